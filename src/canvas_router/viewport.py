"""
Interaction helpers for a zoomable, pannable canvas.

Covers what a renderer needs around the routing engine: canvas/screen
coordinate transforms, grid snapping, hit-testing of nodes and routed
connectors, and arrowhead geometry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from canvas_router.geometry import distance_to_segment, path_segments
from canvas_router.models import ConnectorLayout, Node, Point, snap_to_grid


@dataclass
class Viewport:
    """Zoom and pan state. ``screen = canvas * zoom + pan``."""
    zoom: float = 1.0
    pan_x: float = 0
    pan_y: float = 0

    def screen_to_canvas(self, point: Point, origin: Point = Point(0, 0)) -> Point:
        """Convert a screen point to canvas coordinates.

        *origin* is the top-left corner of the drawing surface on screen.
        """
        return Point(
            (point.x - origin.x - self.pan_x) / self.zoom,
            (point.y - origin.y - self.pan_y) / self.zoom,
        )

    def canvas_to_screen(self, point: Point) -> Point:
        return Point(point.x * self.zoom + self.pan_x, point.y * self.zoom + self.pan_y)


def snap_point(point: Point, grid_size: int = 10) -> Point:
    """Snap both coordinates of *point* to the grid."""
    return Point(snap_to_grid(point.x, grid_size), snap_to_grid(point.y, grid_size))


# ---------------------------------------------------------------------------
# Hit-testing
# ---------------------------------------------------------------------------

def point_in_node(point: Point, node: Node) -> bool:
    return node.bounds.contains_point(point.x, point.y)


def node_at(point: Point, nodes: Iterable[Node]) -> Optional[Node]:
    """Return the topmost node under *point*; later nodes are drawn on top."""
    hit: Optional[Node] = None
    for node in nodes:
        if point_in_node(point, node):
            hit = node
    return hit


def point_near_path(point: Point, path: list[Point], tolerance: float = 15) -> bool:
    return any(
        distance_to_segment(point, a, b) <= tolerance
        for a, b in path_segments(path)
    )


def connector_at(
    point: Point,
    layouts: Iterable[ConnectorLayout],
    tolerance: float = 15,
) -> Optional[ConnectorLayout]:
    """Return the last connector whose path or label box is under *point*."""
    hit: Optional[ConnectorLayout] = None
    for layout in layouts:
        if not layout.renderable:
            continue
        if point_near_path(point, layout.path, tolerance):
            hit = layout
        elif layout.label and layout.label.box.contains_point(point.x, point.y):
            hit = layout
    return hit


# ---------------------------------------------------------------------------
# Arrowheads
# ---------------------------------------------------------------------------

def arrowhead(
    path: list[Point],
    length: float = 15,
    angle: float = math.pi / 6,
) -> list[Point]:
    """Return ``[wing1, tip, wing2]`` for the arrowhead at the path's end.

    The heading comes from the last point that differs from the tip, so
    trailing zero-length segments are skipped. Empty when every point
    coincides.
    """
    if len(path) < 2:
        return []
    tip = path[-1]
    prev = next((p for p in reversed(path[:-1]) if p != tip), None)
    if prev is None:
        return []
    heading = math.atan2(tip.y - prev.y, tip.x - prev.x)
    return [
        Point(tip.x - length * math.cos(heading - angle),
              tip.y - length * math.sin(heading - angle)),
        tip,
        Point(tip.x - length * math.cos(heading + angle),
              tip.y - length * math.sin(heading + angle)),
    ]
