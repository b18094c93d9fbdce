"""
Geometry primitives shared by the router, the label placer and hit-testing.

All functions are pure and work on ``Point`` / ``Rect`` values in canvas
coordinates.
"""

from __future__ import annotations

import math

from canvas_router.models import Point, Rect

_EPS = 1e-9


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def distance_to_segment(p: Point, a: Point, b: Point) -> float:
    """Shortest distance from *p* to the segment *a*–*b*."""
    cx = b.x - a.x
    cy = b.y - a.y
    len_sq = cx * cx + cy * cy
    if len_sq == 0:
        return distance(p, a)
    t = ((p.x - a.x) * cx + (p.y - a.y) * cy) / len_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(p.x - (a.x + t * cx), p.y - (a.y + t * cy))


def _orientation(a: Point, b: Point, c: Point) -> int:
    cross = (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)
    if abs(cross) < _EPS:
        return 0
    return 1 if cross > 0 else -1


def _on_segment(a: Point, b: Point, p: Point) -> bool:
    """Whether *p*, known to be collinear with *a*–*b*, lies between them."""
    return (
        min(a.x, b.x) - _EPS <= p.x <= max(a.x, b.x) + _EPS
        and min(a.y, b.y) - _EPS <= p.y <= max(a.y, b.y) + _EPS
    )


def segments_intersect(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    """Check whether two segments touch or cross, collinear overlap included."""
    o1 = _orientation(a1, a2, b1)
    o2 = _orientation(a1, a2, b2)
    o3 = _orientation(b1, b2, a1)
    o4 = _orientation(b1, b2, a2)

    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and _on_segment(a1, a2, b1):
        return True
    if o2 == 0 and _on_segment(a1, a2, b2):
        return True
    if o3 == 0 and _on_segment(b1, b2, a1):
        return True
    if o4 == 0 and _on_segment(b1, b2, a2):
        return True
    return False


def _line_intersects_rect(a: Point, b: Point, rect: Rect) -> bool:
    """Liang-Barsky parametric clipping test: does segment a-b cross rect?"""
    dx = b.x - a.x
    dy = b.y - a.y

    t0, t1 = 0.0, 1.0
    for edge_p, edge_q in [
        (-dx, a.x - rect.x),
        (dx, rect.right - a.x),
        (-dy, a.y - rect.y),
        (dy, rect.bottom - a.y),
    ]:
        if abs(edge_p) < _EPS:
            if edge_q < 0:
                return False
        else:
            t = edge_q / edge_p
            if edge_p < 0:
                t0 = max(t0, t)
            else:
                t1 = min(t1, t)
    return t0 <= t1


def segment_intersects_rect(a: Point, b: Point, rect: Rect) -> bool:
    """Check if a segment passes through or touches a rectangle."""
    if abs(a.x - b.x) < 0.5:  # Vertical segment
        min_y, max_y = min(a.y, b.y), max(a.y, b.y)
        return (rect.x <= a.x <= rect.right and
                max_y >= rect.y and min_y <= rect.bottom)
    if abs(a.y - b.y) < 0.5:  # Horizontal segment
        min_x, max_x = min(a.x, b.x), max(a.x, b.x)
        return (rect.y <= a.y <= rect.bottom and
                max_x >= rect.x and min_x <= rect.right)
    return _line_intersects_rect(a, b, rect)


def path_segments(path: list[Point]) -> list[tuple[Point, Point]]:
    return [(path[i], path[i + 1]) for i in range(len(path) - 1)]


def path_intersects_rect(path: list[Point], rect: Rect) -> bool:
    return any(segment_intersects_rect(a, b, rect) for a, b in path_segments(path))


def paths_intersect(first: list[Point], second: list[Point]) -> bool:
    """Whether any segment of *first* touches any segment of *second*."""
    for a1, a2 in path_segments(first):
        for b1, b2 in path_segments(second):
            if segments_intersect(a1, a2, b1, b2):
                return True
    return False


def path_length(path: list[Point]) -> float:
    return sum(distance(a, b) for a, b in path_segments(path))


def point_at_fraction(path: list[Point], fraction: float) -> Point:
    """Return the point at *fraction* (0..1) of the path's arc length."""
    if not path:
        raise ValueError("path must contain at least one point")
    total = path_length(path)
    if total == 0:
        return path[0]
    target = total * max(0.0, min(1.0, fraction))
    walked = 0.0
    for a, b in path_segments(path):
        seg = distance(a, b)
        if seg > 0 and walked + seg >= target:
            t = (target - walked) / seg
            return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)
        walked += seg
    return path[-1]


def simplify_path(path: list[Point]) -> list[Point]:
    """Drop duplicate and collinear intermediate points, keeping both ends."""
    if len(path) <= 2:
        return list(path)

    deduped: list[Point] = [path[0]]
    for p in path[1:]:
        if distance(p, deduped[-1]) > _EPS:
            deduped.append(p)
    if len(deduped) == 1:
        return [path[0], path[-1]]

    result: list[Point] = [deduped[0]]
    for i in range(1, len(deduped) - 1):
        prev, cur, nxt = result[-1], deduped[i], deduped[i + 1]
        # Only straight continuations are merged; reversals keep their corner
        forward = (cur.x - prev.x) * (nxt.x - cur.x) + (cur.y - prev.y) * (nxt.y - cur.y)
        if _orientation(prev, cur, nxt) != 0 or forward <= 0:
            result.append(cur)
    result.append(deduped[-1])
    return result
