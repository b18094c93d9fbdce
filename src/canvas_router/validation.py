"""
Input validation for canvas-router MCP server tool parameters.

Snapshots arrive as JSON-like dicts from LLM callers or a canvas front
end. The validators below check them and turn them into model objects,
raising ``ValidationError`` with a message that names the offending field
and, for list entries, its position.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from canvas_router.models import DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH, Connector, Node


class ValidationError(Exception):
    """Raised when a tool argument or snapshot entry is malformed."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Return *value* stripped; it must contain something besides whitespace."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ValidationError(f"'{field_name}' must be a non-empty string.", field_name)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_bounds(
    value: float,
    field_name: str,
    min_val: Optional[float],
    max_val: Optional[float],
) -> None:
    if min_val is not None and value < min_val:
        raise ValidationError(f"'{field_name}' is {value}; it must be >= {min_val}.", field_name)
    if max_val is not None and value > max_val:
        raise ValidationError(f"'{field_name}' is {value}; it must be <= {max_val}.", field_name)


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> float:
    """Coerce a JSON number to float. NaN and infinities are rejected."""
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(f"'{field_name}' must be a finite number, got {value!r}.", field_name)
    result = float(value)
    _check_bounds(result, field_name, min_val, max_val)
    return result


def validate_positive_number(value: Any, field_name: str) -> float:
    result = validate_number(value, field_name)
    if result <= 0:
        raise ValidationError(f"'{field_name}' must be > 0, got {result}.", field_name)
    return result


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """Validate an integer. Whole floats such as ``10.0`` are accepted."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"'{field_name}' must be an integer, got {value!r}.", field_name)
    _check_bounds(value, field_name, min_val, max_val)
    return value


def validate_grid_size(value: Any) -> int:
    return validate_int(value, "grid_size", min_val=1, max_val=100)


def validate_list(value: Any, field_name: str) -> list:
    """Treat a missing list as empty; anything else must be a list."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(
            f"'{field_name}' must be a list of objects, got {type(value).__name__}.", field_name,
        )
    return value


# ---------------------------------------------------------------------------
# Tool actions
# ---------------------------------------------------------------------------

ROUTE_ACTIONS = ("path", "all", "edges")
INSPECT_ACTIONS = ("hit_test", "to_canvas", "to_screen", "snap", "arrowheads")


def validate_action(value: Any, tool_name: str, allowed: tuple[str, ...]) -> str:
    """Return the lower-cased action if *allowed* contains it."""
    action = value.strip().lower() if isinstance(value, str) else ""
    if action in allowed:
        return action
    choices = ", ".join(allowed)
    if not action:
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}.", "action",
        )
    raise ValidationError(
        f"Unknown {tool_name} action '{value}'. Valid actions: {choices}.", "action",
    )


# ---------------------------------------------------------------------------
# Snapshot entries
# ---------------------------------------------------------------------------

def _entry(raw: Any, where: str) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError(f"{where} must be an object (dict), got {type(raw).__name__}.")
    return raw


def _required(raw: dict, key: str, where: str) -> Any:
    if key not in raw:
        raise ValidationError(f"{where} is missing required key '{key}'.", key)
    return raw[key]


def validate_node(
    raw: Any,
    index: int,
    default_width: float = DEFAULT_NODE_WIDTH,
    default_height: float = DEFAULT_NODE_HEIGHT,
) -> Node:
    """Build a ``Node`` from ``{id, x, y, width?, height?}``."""
    where = f"nodes[{index}]"
    raw = _entry(raw, where)
    node_id = validate_non_empty_string(_required(raw, "id", where), f"{where}.id")
    x = validate_number(_required(raw, "x", where), f"{where}.x")
    y = validate_number(_required(raw, "y", where), f"{where}.y")
    width = validate_positive_number(raw.get("width", default_width), f"{where}.width")
    height = validate_positive_number(raw.get("height", default_height), f"{where}.height")
    return Node(node_id, x, y, width, height)


def validate_connector(raw: Any, index: int) -> Connector:
    """Build a ``Connector`` from ``{id, source_id, destination_id, label?}``.

    Ids of nodes that are not in the snapshot are accepted; the engine
    reports such connectors as unrenderable. Self-loops are rejected.
    """
    where = f"connectors[{index}]"
    raw = _entry(raw, where)
    conn_id, source_id, destination_id = (
        validate_non_empty_string(_required(raw, key, where), f"{where}.{key}")
        for key in ("id", "source_id", "destination_id")
    )
    if source_id == destination_id:
        raise ValidationError(
            f"{where}: 'source_id' and 'destination_id' must be different "
            "(self-loops are not routed).",
            "destination_id",
        )
    label = raw.get("label", "")
    if not isinstance(label, str):
        raise ValidationError(f"{where}.label must be a string, got {type(label).__name__}.", "label")
    return Connector(conn_id, source_id, destination_id, label)


def _reject_duplicates(ids: list[str], kind: str) -> None:
    seen: set[str] = set()
    for index, item_id in enumerate(ids):
        if item_id in seen:
            raise ValidationError(f"Duplicate {kind} id '{item_id}' at {kind}s[{index}].", "id")
        seen.add(item_id)


def validate_snapshot(
    nodes: Any,
    connectors: Any,
    default_width: float = DEFAULT_NODE_WIDTH,
    default_height: float = DEFAULT_NODE_HEIGHT,
) -> tuple[list[Node], list[Connector]]:
    """Validate a whole diagram snapshot and convert it to model objects."""
    node_list = [
        validate_node(raw, i, default_width, default_height)
        for i, raw in enumerate(validate_list(nodes, "nodes"))
    ]
    connector_list = [
        validate_connector(raw, i)
        for i, raw in enumerate(validate_list(connectors, "connectors"))
    ]
    _reject_duplicates([n.id for n in node_list], "node")
    _reject_duplicates([c.id for c in connector_list], "connector")
    return node_list, connector_list
