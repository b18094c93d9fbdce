"""
Core model classes for the connector routing engine.

Provides the typed snapshot the engine consumes (nodes and connectors) and
the derived values it produces (edges, paths, label placements).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


DEFAULT_NODE_WIDTH = 100
DEFAULT_NODE_HEIGHT = 60


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Edge(Enum):
    """One of the four sides of a node's rectangle."""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def is_horizontal(self) -> bool:
        """Top and bottom edges run along the x axis."""
        return self in (Edge.TOP, Edge.BOTTOM)

    @property
    def normal(self) -> tuple[float, float]:
        """Outward unit normal of the edge."""
        return _EDGE_NORMALS[self]


_EDGE_NORMALS: dict[Edge, tuple[float, float]] = {
    Edge.TOP: (0.0, -1.0),
    Edge.RIGHT: (1.0, 0.0),
    Edge.BOTTOM: (0.0, 1.0),
    Edge.LEFT: (-1.0, 0.0),
}


class ResolutionMode(Enum):
    """How far collision resolution may recurse for one connector."""
    FULL_RESOLVE = "full"
    SKIP_NESTED_RESOLVE = "skip_nested"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    """A 2-D canvas coordinate."""
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Rect:
    """Axis-aligned bounding box."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    @property
    def center(self) -> Point:
        return Point(self.cx, self.cy)

    def expanded(self, margin: float) -> Rect:
        """Return a copy grown by *margin* on every side."""
        return Rect(
            self.x - margin, self.y - margin,
            self.width + 2 * margin, self.height + 2 * margin,
        )

    def intersects(self, other: Rect, margin: float = 0) -> bool:
        """Check if two bounding boxes overlap (with optional margin)."""
        return not (
            self.right + margin <= other.x
            or other.right + margin <= self.x
            or self.bottom + margin <= other.y
            or other.bottom + margin <= self.y
        )

    def contains_point(self, px: float, py: float, margin: float = 0) -> bool:
        """Check if a point is inside this bounding box (with margin)."""
        return (
            self.x - margin <= px <= self.right + margin
            and self.y - margin <= py <= self.bottom + margin
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class Node:
    """A rectangle on the canvas. ``x``/``y`` is the top-left corner."""
    id: str
    x: float = 0
    y: float = 0
    width: float = DEFAULT_NODE_WIDTH
    height: float = DEFAULT_NODE_HEIGHT

    @property
    def bounds(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class Connector:
    """A directed, labeled link from one node to another."""
    id: str
    source_id: str
    destination_id: str
    label: str = ""


@dataclass(frozen=True)
class LabelPlacement:
    """Where a connector's label sits along its path.

    ``fraction`` is the arc-length fraction the position was taken from and
    ``score`` the collision penalty of the chosen box (0 means clear).
    """
    position: Point
    box: Rect
    fraction: float
    score: float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "box": self.box.to_dict(),
            "fraction": round(self.fraction, 4),
            "score": self.score,
        }


@dataclass
class ConnectorLayout:
    """The routed geometry of one connector.

    An empty ``path`` means the connector cannot be rendered (a missing
    endpoint or a self-loop) and ``label`` is then ``None``.
    """
    connector_id: str
    path: list[Point] = field(default_factory=list)
    label: Optional[LabelPlacement] = None
    source_edge: Optional[Edge] = None
    destination_edge: Optional[Edge] = None
    collisions: int = 0

    @property
    def renderable(self) -> bool:
        return len(self.path) >= 2

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.connector_id,
            "path": [p.to_dict() for p in self.path],
            "label": self.label.to_dict() if self.label else None,
        }
        if self.source_edge:
            data["source_edge"] = self.source_edge.value
        if self.destination_edge:
            data["destination_edge"] = self.destination_edge.value
        if self.renderable:
            data["collisions"] = self.collisions
        return data


@dataclass
class Scene:
    """An immutable-by-convention snapshot of nodes and connectors.

    Built once per recomputation pass so that every connector is routed
    against the same geometry.
    """
    nodes: list[Node] | None = None
    connectors: list[Connector] | None = None
    _by_id: dict[str, Node] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.nodes is None:
            self.nodes = []
        if self.connectors is None:
            self.connectors = []
        self._by_id = {n.id: n for n in self.nodes}

    def node(self, node_id: str) -> Optional[Node]:
        return self._by_id.get(node_id)

    def endpoints(self, connector: Connector) -> Optional[tuple[Node, Node]]:
        """Return (source, destination) or ``None`` when unrenderable."""
        if connector.source_id == connector.destination_id:
            return None
        src = self._by_id.get(connector.source_id)
        dst = self._by_id.get(connector.destination_id)
        if src is None or dst is None:
            return None
        return src, dst


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def snap_to_grid(value: float, grid_size: int = 10) -> float:
    """Snap a coordinate to the nearest grid point."""
    return round(value / grid_size) * grid_size
