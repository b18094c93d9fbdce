"""
Connector attachment and orthogonal path construction.

Implements the per-connector steps that run before collision handling:
- Edge selection: which side of a node a connector leaves or enters by
- Connection-point allocation: spreading connectors that share a side
- Orthogonal path building with a guaranteed minimum travel distance
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from typing import Optional

from canvas_router.geometry import distance, simplify_path
from canvas_router.models import Connector, Edge, Node, Point, Rect, Scene


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutConfig:
    """Configuration for edge attachment and path construction."""
    min_travel: float = 40         # Floor for the first leg away from a node
    travel_ratio: float = 0.2      # First leg as a share of endpoint distance
    edge_margin: float = 0.1       # Keep connection points in 10%..90% of a side
    sort_tolerance: float = 5      # Sibling positions closer than this tie


# Tie-break order when a ray leaves exactly through a corner
EDGE_PRIORITY: tuple[Edge, ...] = (Edge.TOP, Edge.RIGHT, Edge.BOTTOM, Edge.LEFT)


# ---------------------------------------------------------------------------
# Edge selection
# ---------------------------------------------------------------------------

def select_edge(from_node: Node, to_node: Node) -> Edge:
    """Return the side of *from_node* that the ray towards *to_node* exits.

    The ray runs from center to center. Each side's supporting line is
    intersected with it, intersections outside the side's extent are
    dropped, and the nearest remaining one wins. Coincident centers fall
    back to the first entry of ``EDGE_PRIORITY``.
    """
    bounds = from_node.bounds
    cx, cy = bounds.cx, bounds.cy
    target = to_node.center
    dx = target.x - cx
    dy = target.y - cy

    if abs(dx) < 1e-9 and abs(dy) < 1e-9:
        return EDGE_PRIORITY[0]

    best: Optional[Edge] = None
    best_t = math.inf
    for edge in EDGE_PRIORITY:
        t = _ray_hit(bounds, edge, cx, cy, dx, dy)
        if t is None:
            continue
        if t < best_t - 1e-9:
            best, best_t = edge, t
    return best or EDGE_PRIORITY[0]


def _ray_hit(
    bounds: Rect,
    edge: Edge,
    cx: float, cy: float,
    dx: float, dy: float,
) -> Optional[float]:
    """Ray parameter where it crosses *edge*, or None if it misses the side."""
    if edge.is_horizontal:
        if abs(dy) < 1e-9:
            return None
        line_y = bounds.y if edge is Edge.TOP else bounds.bottom
        t = (line_y - cy) / dy
        if t <= 0:
            return None
        hit_x = cx + t * dx
        if bounds.x - 1e-9 <= hit_x <= bounds.right + 1e-9:
            return t
        return None

    if abs(dx) < 1e-9:
        return None
    line_x = bounds.x if edge is Edge.LEFT else bounds.right
    t = (line_x - cx) / dx
    if t <= 0:
        return None
    hit_y = cy + t * dy
    if bounds.y - 1e-9 <= hit_y <= bounds.bottom + 1e-9:
        return t
    return None


def select_edges(source: Node, destination: Node) -> tuple[Edge, Edge]:
    """Return (exit_edge, entry_edge) for a connector source → destination."""
    return select_edge(source, destination), select_edge(destination, source)


# ---------------------------------------------------------------------------
# Connection-point allocation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EdgeAttachment:
    """A connector touching one side of a node."""
    connector: Connector
    other: Node
    is_destination: bool  # True when the node is the connector's destination


def edge_attachments(
    node: Node,
    edge: Edge,
    scene: Scene,
    config: Optional[LayoutConfig] = None,
) -> list[EdgeAttachment]:
    """Collect every connector on *edge* of *node*, in allocation order.

    Outgoing connectors count when their exit edge is *edge*, incoming ones
    when their entry edge is. The result is ordered along the side by the
    far endpoint's center (x for top/bottom, y for left/right); positions
    within ``sort_tolerance`` put the incoming connector first.
    """
    cfg = config or LayoutConfig()
    found: list[EdgeAttachment] = []
    for conn in scene.connectors:
        ends = scene.endpoints(conn)
        if ends is None:
            continue
        src, dst = ends
        if src.id == node.id and select_edge(src, dst) is edge:
            found.append(EdgeAttachment(conn, dst, False))
        elif dst.id == node.id and select_edge(dst, src) is edge:
            found.append(EdgeAttachment(conn, src, True))

    def _coord(att: EdgeAttachment) -> float:
        center = att.other.center
        return center.x if edge.is_horizontal else center.y

    def _compare(a: EdgeAttachment, b: EdgeAttachment) -> int:
        diff = _coord(a) - _coord(b)
        if abs(diff) > cfg.sort_tolerance:
            return -1 if diff < 0 else 1
        if a.is_destination != b.is_destination:
            return -1 if a.is_destination else 1
        return 0

    found.sort(key=functools.cmp_to_key(_compare))
    return found


def edge_fraction(edge: Edge, index: int, count: int, margin: float = 0.1) -> float:
    """Position of the *index*-th of *count* siblings as a 0..1 share of a side.

    Siblings are spread evenly inside ``[margin, 1 - margin]``. Top and left
    sides start at the low coordinate end; bottom and right are reversed.
    """
    t = margin + (1.0 - 2 * margin) * (index + 1) / (count + 1)
    if edge in (Edge.BOTTOM, Edge.RIGHT):
        t = 1.0 - t
    return t


def point_on_edge(bounds: Rect, edge: Edge, t: float) -> Point:
    """Return the boundary point at share *t* along *edge*."""
    if edge is Edge.TOP:
        return Point(bounds.x + t * bounds.width, bounds.y)
    if edge is Edge.BOTTOM:
        return Point(bounds.x + t * bounds.width, bounds.bottom)
    if edge is Edge.LEFT:
        return Point(bounds.x, bounds.y + t * bounds.height)
    return Point(bounds.right, bounds.y + t * bounds.height)


def allocate_connection_point(
    node: Node,
    edge: Edge,
    connector: Connector,
    scene: Scene,
    config: Optional[LayoutConfig] = None,
) -> Point:
    """Compute where *connector* touches *edge* of *node*.

    A connector that is not attached to that side gets the side's midpoint.
    Connectors are matched by ``id``, so an equal copy of one in the scene
    gets the same point.
    """
    cfg = config or LayoutConfig()
    siblings = edge_attachments(node, edge, scene, cfg)
    index = next(
        (i for i, att in enumerate(siblings) if att.connector.id == connector.id),
        None,
    )
    if index is None:
        return point_on_edge(node.bounds, edge, 0.5)
    t = edge_fraction(edge, index, len(siblings), cfg.edge_margin)
    return point_on_edge(node.bounds, edge, t)


@dataclass(frozen=True)
class Anchor:
    """One end of a routed connector."""
    node: Node
    edge: Edge
    point: Point


def connector_anchors(
    connector: Connector,
    scene: Scene,
    config: Optional[LayoutConfig] = None,
) -> Optional[tuple[Anchor, Anchor]]:
    """Select edges and allocate both connection points of *connector*.

    Returns None for a connector with a missing endpoint or a self-loop.
    """
    ends = scene.endpoints(connector)
    if ends is None:
        return None
    src, dst = ends
    exit_edge, entry_edge = select_edges(src, dst)
    return (
        Anchor(src, exit_edge, allocate_connection_point(src, exit_edge, connector, scene, config)),
        Anchor(dst, entry_edge, allocate_connection_point(dst, entry_edge, connector, scene, config)),
    )


# ---------------------------------------------------------------------------
# Orthogonal path construction
# ---------------------------------------------------------------------------

def minimum_travel(
    source: Point,
    destination: Point,
    config: Optional[LayoutConfig] = None,
) -> float:
    """Length of the first leg: a share of the distance, never below the floor."""
    cfg = config or LayoutConfig()
    return max(cfg.travel_ratio * distance(source, destination), cfg.min_travel)


def build_orthogonal_path(
    source: Point,
    source_edge: Edge,
    destination: Point,
    destination_edge: Edge,
    travel: Optional[float] = None,
    lane_offset: Optional[float] = None,
    config: Optional[LayoutConfig] = None,
) -> list[Point]:
    """Build an axis-aligned path from *source* to *destination*.

    Without *lane_offset* the result is ``[source, corner1, corner2,
    destination]``: the first leg runs *travel* units along the source
    edge's outward normal, the second lines up with the destination.

    With *lane_offset* the path detours. It leaves the source by *travel*,
    steps sideways into a lane shifted by *lane_offset* from the midline of
    the two endpoints, runs along it, and approaches the destination along
    its own edge normal from *travel* units out.
    """
    if travel is None:
        travel = minimum_travel(source, destination, config)
    snx, sny = source_edge.normal
    exit_pt = Point(source.x + snx * travel, source.y + sny * travel)

    if lane_offset is None:
        if not source_edge.is_horizontal:
            return [source, exit_pt, Point(exit_pt.x, destination.y), destination]
        return [source, exit_pt, Point(destination.x, exit_pt.y), destination]

    dnx, dny = destination_edge.normal
    entry_pt = Point(destination.x + dnx * travel, destination.y + dny * travel)
    if not source_edge.is_horizontal:
        lane = (exit_pt.y + entry_pt.y) / 2 + lane_offset
        points = [
            source, exit_pt,
            Point(exit_pt.x, lane), Point(entry_pt.x, lane),
            entry_pt, destination,
        ]
    else:
        lane = (exit_pt.x + entry_pt.x) / 2 + lane_offset
        points = [
            source, exit_pt,
            Point(lane, exit_pt.y), Point(lane, entry_pt.y),
            entry_pt, destination,
        ]
    return simplify_path(points)
