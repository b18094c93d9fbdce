"""
Canvas Router MCP Server — route diagram connectors via Model Context Protocol.

Exposes 2 stateless tools that let an LLM agent or a canvas front end hand
over a snapshot of nodes and connectors and get back renderable geometry.

Tools:
  1. route    — geometry: connector paths + label positions, edge selection
  2. inspect  — interaction: hit-testing, viewport transforms, grid snapping,
                arrowheads
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from canvas_router.layout import select_edges
from canvas_router.layout_engine import (
    LayoutEngineConfig,
    compute_all_connector_paths,
    compute_connector_path,
)
from canvas_router.models import Connector, Node, Point, Scene
from canvas_router.validation import (
    INSPECT_ACTIONS,
    ROUTE_ACTIONS,
    ValidationError,
    validate_action,
    validate_grid_size,
    validate_non_empty_string,
    validate_number,
    validate_positive_number,
    validate_snapshot,
)
from canvas_router.viewport import (
    Viewport,
    arrowhead,
    connector_at,
    node_at,
    snap_point,
)

# ---------------------------------------------------------------------------
# Logging: suppress routine FastMCP INFO messages that clients show
# as warnings (they go to stderr).
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("canvas-router")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "canvas-router-mcp",
    instructions=(
        "MCP server that routes connectors between rectangles on a canvas.\n\n"
        "=== 2 TOOLS — use the 'action' parameter to pick the operation ===\n\n"
        "1. route(action, nodes, connectors, ...) — path, all, edges.\n"
        "2. inspect(action, ...) — hit_test, to_canvas, to_screen, snap,\n"
        "   arrowheads.\n\n"
        "=== INPUT ===\n"
        "- nodes: list of {id, x, y, width?, height?}; x,y is the top-left\n"
        "  corner in canvas units, size defaults to 100x60.\n"
        "- connectors: list of {id, source_id, destination_id, label?}.\n"
        "- Every call takes the FULL current snapshot; nothing is stored.\n"
        "- Re-run route after any node move or connector change.\n"
        "- A connector whose node is missing comes back with an empty path:\n"
        "  skip drawing it.\n"
    ),
)

_CONFIG = LayoutEngineConfig()


# ===================================================================
# TOOL 1: route (connector geometry)
# ===================================================================

@mcp.tool()
def route(
    action: str,
    nodes: list[dict[str, Any]] | None = None,
    connectors: list[dict[str, Any]] | None = None,
    connector_id: str = "",
) -> str:
    """Compute connector geometry for a diagram snapshot.

    Actions:
      path   — Path and label for one connector. Params: nodes, connectors,
               connector_id.
      all    — Paths and labels for every connector. Params: nodes, connectors.
      edges  — Which side of each node every connector leaves / enters by.
               Params: nodes, connectors.

    Args:
        action: One of: path, all, edges.
        nodes: List of {id, x, y, width?, height?}.
        connectors: List of {id, source_id, destination_id, label?}.
        connector_id: Connector to route for action 'path'.

    Returns:
        JSON data or an error message.
    """
    try:
        action = validate_action(action, "route", ROUTE_ACTIONS)
        node_list, connector_list = _parse_snapshot(nodes, connectors)
    except ValidationError as exc:
        logger.warning("route rejected: %s", exc.message)
        return f"Error: {exc.message}"

    if action == "path":
        try:
            connector_id = validate_non_empty_string(connector_id, "connector_id")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        target = next((c for c in connector_list if c.id == connector_id), None)
        if target is None:
            return f"Error: connector '{connector_id}' not found."
        layout = compute_connector_path(target, node_list, connector_list, config=_CONFIG)
        return json.dumps(layout.to_dict(), indent=2)

    elif action == "all":
        layouts = compute_all_connector_paths(node_list, connector_list, config=_CONFIG)
        return json.dumps([lay.to_dict() for lay in layouts.values()], indent=2)

    elif action == "edges":
        scene = Scene(nodes=node_list, connectors=connector_list)
        report: list[dict[str, Any]] = []
        for conn in connector_list:
            ends = scene.endpoints(conn)
            if ends is None:
                report.append({"id": conn.id, "renderable": False})
                continue
            exit_edge, entry_edge = select_edges(*ends)
            report.append({
                "id": conn.id,
                "renderable": True,
                "source_edge": exit_edge.value,
                "destination_edge": entry_edge.value,
            })
        return json.dumps(report, indent=2)

    else:
        return f"Error: unknown route action '{action}'. Use: path, all, edges."


# ===================================================================
# TOOL 2: inspect (interaction helpers)
# ===================================================================

@mcp.tool()
def inspect(
    action: str,
    nodes: list[dict[str, Any]] | None = None,
    connectors: list[dict[str, Any]] | None = None,
    x: float = 0,
    y: float = 0,
    tolerance: float | None = None,
    zoom: float = 1.0,
    pan_x: float = 0,
    pan_y: float = 0,
    origin_x: float = 0,
    origin_y: float = 0,
    grid_size: int | None = None,
) -> str:
    """Interaction helpers around routed connectors.

    Actions:
      hit_test   — Node and connector under canvas point (x, y).
                   Params: nodes, connectors, x, y, tolerance.
      to_canvas  — Convert screen point (x, y) to canvas coordinates.
                   Params: x, y, zoom, pan_x, pan_y, origin_x, origin_y.
      to_screen  — Convert canvas point (x, y) to screen coordinates.
                   Params: x, y, zoom, pan_x, pan_y.
      snap       — Snap (x, y) to the grid. Params: x, y, grid_size.
      arrowheads — Arrowhead triangle for every renderable connector.
                   Params: nodes, connectors.

    Args:
        action: One of: hit_test, to_canvas, to_screen, snap, arrowheads.
        nodes: List of {id, x, y, width?, height?}.
        connectors: List of {id, source_id, destination_id, label?}.
        x: Point x coordinate.
        y: Point y coordinate.
        tolerance: Maximum distance from a path that still counts as a hit
            (default: the engine's hit tolerance, 15).
        zoom: Viewport zoom factor.
        pan_x: Viewport horizontal pan.
        pan_y: Viewport vertical pan.
        origin_x: Screen x of the drawing surface's top-left corner.
        origin_y: Screen y of the drawing surface's top-left corner.
        grid_size: Grid spacing for snap (default: 10).

    Returns:
        JSON data or an error message.
    """
    try:
        action = validate_action(action, "inspect", INSPECT_ACTIONS)
        point = Point(validate_number(x, "x"), validate_number(y, "y"))
    except ValidationError as exc:
        logger.warning("inspect rejected: %s", exc.message)
        return f"Error: {exc.message}"

    if action in ("to_canvas", "to_screen"):
        try:
            viewport = Viewport(
                zoom=validate_positive_number(zoom, "zoom"),
                pan_x=validate_number(pan_x, "pan_x"),
                pan_y=validate_number(pan_y, "pan_y"),
            )
            origin = Point(validate_number(origin_x, "origin_x"), validate_number(origin_y, "origin_y"))
        except ValidationError as exc:
            return f"Error: {exc.message}"
        if action == "to_canvas":
            return json.dumps(viewport.screen_to_canvas(point, origin).to_dict())
        return json.dumps(viewport.canvas_to_screen(point).to_dict())

    if action == "snap":
        try:
            grid_size = validate_grid_size(_CONFIG.grid_size if grid_size is None else grid_size)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        return json.dumps(snap_point(point, grid_size).to_dict())

    # Remaining actions need the snapshot
    try:
        node_list, connector_list = _parse_snapshot(nodes, connectors)
        tolerance = validate_number(
            _CONFIG.hit_tolerance if tolerance is None else tolerance, "tolerance", min_val=0,
        )
    except ValidationError as exc:
        logger.warning("inspect rejected: %s", exc.message)
        return f"Error: {exc.message}"
    layouts = compute_all_connector_paths(node_list, connector_list, config=_CONFIG)

    if action == "hit_test":
        # Connectors are drawn over nodes, so they win the hit
        hit_conn = connector_at(point, layouts.values(), tolerance)
        hit_node = node_at(point, node_list)
        return json.dumps({
            "connector_id": hit_conn.connector_id if hit_conn else None,
            "node_id": hit_node.id if hit_node else None,
        }, indent=2)

    elif action == "arrowheads":
        heads: list[dict[str, Any]] = []
        for lay in layouts.values():
            if not lay.renderable:
                continue
            points = arrowhead(lay.path, _CONFIG.arrowhead_length, _CONFIG.arrowhead_angle)
            heads.append({"id": lay.connector_id, "points": [p.to_dict() for p in points]})
        return json.dumps(heads, indent=2)

    else:
        return (
            f"Error: unknown inspect action '{action}'. "
            "Use: hit_test, to_canvas, to_screen, snap, arrowheads."
        )


# ===================================================================
# Internal helpers
# ===================================================================

def _parse_snapshot(nodes: Any, connectors: Any) -> tuple[list[Node], list[Connector]]:
    return validate_snapshot(
        nodes, connectors, _CONFIG.default_node_width, _CONFIG.default_node_height,
    )


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
