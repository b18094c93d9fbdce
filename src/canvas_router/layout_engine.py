"""
Connector routing engine for canvas diagrams.

Turns a snapshot of nodes and connectors into renderable connector
geometry:
- Edge selection and connection-point allocation (see ``layout``)
- Orthogonal paths with a minimum travel distance away from each node
- Collision resolution against nodes and other connectors
- Label placement along the path, avoiding nodes, paths and labels

Every function here is a pure function of its arguments. Nothing is
cached between calls, so callers recompute after any node move or
connector change.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

from canvas_router.geometry import (
    path_intersects_rect,
    paths_intersect,
    point_at_fraction,
)
from canvas_router.layout import (
    Anchor,
    LayoutConfig,
    build_orthogonal_path,
    connector_anchors,
    minimum_travel,
)
from canvas_router.models import (
    Connector,
    ConnectorLayout,
    LabelPlacement,
    Node,
    Point,
    Rect,
    ResolutionMode,
    Scene,
)

logger = logging.getLogger("canvas-router.engine")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutEngineConfig(LayoutConfig):
    """Configuration for collision resolution, labels and hit-testing."""
    # Collision resolution
    travel_multipliers: tuple[float, ...] = (1, 2, 3)   # Plain paths, first leg × base
    detour_multipliers: tuple[float, ...] = (1, 2, 3)   # Detour lanes, ± offset × base
    obstacle_clearance: float = 5                        # Gap kept around foreign nodes

    # Label placement
    label_min_fraction: float = 0.3
    label_max_fraction: float = 0.7
    label_step: float = 0.05
    node_penalty: float = 100
    connector_penalty: float = 10
    label_char_width: float = 7
    label_min_width: float = 30
    label_height: float = 16
    label_padding: float = 4

    # Interaction / rendering helpers
    hit_tolerance: float = 15
    arrowhead_length: float = 15
    arrowhead_angle: float = math.pi / 6
    default_node_width: float = 100
    default_node_height: float = 60
    grid_size: int = 10


# ---------------------------------------------------------------------------
# Collision resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PathCandidate:
    """One entry of the resolver's retry schedule."""
    travel: float
    lane_offset: Optional[float] = None


def candidate_schedule(
    base_travel: float,
    config: Optional[LayoutEngineConfig] = None,
) -> list[PathCandidate]:
    """Return the bounded list of path variants the resolver will try.

    Plain paths with a growing first leg come first, then detours whose
    lane alternates above and below (or left and right of) the midline at
    growing offsets.
    """
    cfg = config or LayoutEngineConfig()
    schedule = [PathCandidate(base_travel * m) for m in cfg.travel_multipliers or (1,)]
    for k in cfg.detour_multipliers:
        schedule.append(PathCandidate(base_travel, k * base_travel))
        schedule.append(PathCandidate(base_travel, -k * base_travel))
    return schedule


def count_collisions(
    path: list[Point],
    source_id: str,
    destination_id: str,
    nodes: Iterable[Node],
    other_paths: Iterable[list[Point]],
    clearance: float = 0,
) -> tuple[int, int]:
    """Count (node_hits, connector_hits) for a candidate path.

    The connector's own source and destination nodes are not obstacles.
    Each foreign node and each other path counts at most once.
    """
    node_hits = 0
    for node in nodes:
        if node.id in (source_id, destination_id):
            continue
        if path_intersects_rect(path, node.bounds.expanded(clearance)):
            node_hits += 1

    connector_hits = sum(1 for other in other_paths if other and paths_intersect(path, other))
    return node_hits, connector_hits


def resolve_collisions(
    source: Anchor,
    destination: Anchor,
    scene: Scene,
    other_paths: list[list[Point]],
    config: Optional[LayoutEngineConfig] = None,
) -> tuple[list[Point], int]:
    """Pick the first collision-free path from the retry schedule.

    If every candidate collides, the least-bad one is returned: fewest
    collisions in total, then fewest node hits, then earliest in the
    schedule. Returns (path, collisions).
    """
    cfg = config or LayoutEngineConfig()
    base = minimum_travel(source.point, destination.point, cfg)

    best_rank: tuple[float, ...] = (math.inf,)
    best_path: list[Point] = []
    for index, candidate in enumerate(candidate_schedule(base, cfg)):
        path = build_orthogonal_path(
            source.point, source.edge,
            destination.point, destination.edge,
            travel=candidate.travel,
            lane_offset=candidate.lane_offset,
        )
        node_hits, connector_hits = count_collisions(
            path, source.node.id, destination.node.id,
            scene.nodes, other_paths, cfg.obstacle_clearance,
        )
        total = node_hits + connector_hits
        if total == 0:
            return path, 0
        rank = (total, node_hits, index)
        if rank < best_rank:
            best_rank, best_path = rank, path

    collisions = int(best_rank[0])
    logger.debug(
        "No collision-free route between %s and %s; using path with %d collisions",
        source.node.id, destination.node.id, collisions,
    )
    return best_path, collisions


# ---------------------------------------------------------------------------
# Label placement
# ---------------------------------------------------------------------------

@dataclass
class LabelObstacles:
    """Everything a label should stay clear of."""
    nodes: list[Rect] = field(default_factory=list)
    paths: list[list[Point]] = field(default_factory=list)
    labels: list[Rect] = field(default_factory=list)


def label_size(text: str, config: Optional[LayoutEngineConfig] = None) -> tuple[float, float]:
    """Estimate a label's (width, height) from its text."""
    cfg = config or LayoutEngineConfig()
    width = max(len(text) * cfg.label_char_width, cfg.label_min_width) + 2 * cfg.label_padding
    return width, cfg.label_height + 2 * cfg.label_padding


def label_box(center: Point, text: str, config: Optional[LayoutEngineConfig] = None) -> Rect:
    """Label bounding box centered on *center*."""
    width, height = label_size(text, config)
    return Rect(center.x - width / 2, center.y - height / 2, width, height)


def label_fractions(config: Optional[LayoutEngineConfig] = None) -> list[float]:
    """Arc-length fractions to try: the midpoint, then outward alternating."""
    cfg = config or LayoutEngineConfig()
    fractions = [0.5]
    k = 1
    while True:
        below = round(0.5 - k * cfg.label_step, 6)
        above = round(0.5 + k * cfg.label_step, 6)
        in_below = below >= cfg.label_min_fraction - 1e-9
        in_above = above <= cfg.label_max_fraction + 1e-9
        if not in_below and not in_above:
            break
        if in_below:
            fractions.append(max(below, cfg.label_min_fraction))
        if in_above:
            fractions.append(min(above, cfg.label_max_fraction))
        k += 1
    return fractions


def score_label_box(
    box: Rect,
    obstacles: LabelObstacles,
    config: Optional[LayoutEngineConfig] = None,
) -> float:
    """Penalty for a label box: nodes weigh more than connectors or labels."""
    cfg = config or LayoutEngineConfig()
    score = 0.0
    for rect in obstacles.nodes:
        if box.intersects(rect):
            score += cfg.node_penalty
    for path in obstacles.paths:
        if path and path_intersects_rect(path, box):
            score += cfg.connector_penalty
    for rect in obstacles.labels:
        if box.intersects(rect):
            score += cfg.connector_penalty
    return score


def score_label_candidates(
    path: list[Point],
    text: str,
    obstacles: LabelObstacles,
    config: Optional[LayoutEngineConfig] = None,
) -> list[LabelPlacement]:
    """Score every candidate position, in search order."""
    cfg = config or LayoutEngineConfig()
    return [
        _label_candidate(path, text, fraction, obstacles, cfg)
        for fraction in label_fractions(cfg)
    ]


def _label_candidate(
    path: list[Point],
    text: str,
    fraction: float,
    obstacles: LabelObstacles,
    cfg: LayoutEngineConfig,
) -> LabelPlacement:
    center = point_at_fraction(path, fraction)
    box = label_box(center, text, cfg)
    return LabelPlacement(center, box, fraction, score_label_box(box, obstacles, cfg))


def place_label(
    path: list[Point],
    text: str,
    obstacles: LabelObstacles,
    config: Optional[LayoutEngineConfig] = None,
) -> LabelPlacement:
    """Find the label position closest to the midpoint that collides least.

    Stops at the first collision-free candidate. Otherwise returns the
    lowest-scoring one; ties go to the candidate nearer the midpoint.
    """
    cfg = config or LayoutEngineConfig()
    fractions = label_fractions(cfg)
    best = _label_candidate(path, text, fractions[0], obstacles, cfg)
    for fraction in fractions[1:]:
        if best.score == 0:
            return best
        placement = _label_candidate(path, text, fraction, obstacles, cfg)
        if placement.score < best.score:
            best = placement

    if best.score:
        logger.debug("Label %r overlaps obstacles; best score %.0f", text, best.score)
    return best


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def _first_pass(
    connector: Connector,
    source: Anchor,
    destination: Anchor,
    cfg: LayoutEngineConfig,
) -> ConnectorLayout:
    """Unresolved layout: plain path and a midpoint label."""
    path = build_orthogonal_path(
        source.point, source.edge, destination.point, destination.edge, config=cfg,
    )
    center = point_at_fraction(path, 0.5)
    return ConnectorLayout(
        connector.id,
        path=path,
        label=LabelPlacement(center, label_box(center, connector.label, cfg), 0.5),
        source_edge=source.edge,
        destination_edge=destination.edge,
    )


def _layout_connector(
    connector: Connector,
    scene: Scene,
    mode: ResolutionMode,
    cfg: LayoutEngineConfig,
    first_pass: Optional[list[tuple[Connector, ConnectorLayout]]] = None,
) -> ConnectorLayout:
    anchors = connector_anchors(connector, scene, cfg)
    if anchors is None:
        logger.debug(
            "Connector %s is unrenderable (%s -> %s)",
            connector.id, connector.source_id, connector.destination_id,
        )
        return ConnectorLayout(connector.id)
    source, destination = anchors

    if mode is ResolutionMode.SKIP_NESTED_RESOLVE:
        return _first_pass(connector, source, destination, cfg)

    # Other connectors are only ever routed one level deep
    if first_pass is None:
        first_pass = [
            (other, _layout_connector(other, scene, ResolutionMode.SKIP_NESTED_RESOLVE, cfg))
            for other in scene.connectors
            if other.id != connector.id
        ]
    others = [lay for other, lay in first_pass if other.id != connector.id and lay.renderable]

    path, collisions = resolve_collisions(
        source, destination, scene, [lay.path for lay in others], cfg,
    )
    obstacles = LabelObstacles(
        nodes=[n.bounds for n in scene.nodes],
        paths=[lay.path for lay in others],
        labels=[lay.label.box for lay in others if lay.label],
    )
    label = place_label(path, connector.label, obstacles, cfg)
    return ConnectorLayout(
        connector.id,
        path=path,
        label=label,
        source_edge=source.edge,
        destination_edge=destination.edge,
        collisions=collisions,
    )


def compute_connector_path(
    connector: Connector,
    nodes: Iterable[Node],
    connectors: Iterable[Connector],
    mode: ResolutionMode = ResolutionMode.FULL_RESOLVE,
    config: Optional[LayoutEngineConfig] = None,
) -> ConnectorLayout:
    """Route one connector against a snapshot of the whole diagram.

    Args:
        connector: The connector to route. It should be one of *connectors*.
        nodes: Every node in the diagram.
        connectors: Every connector in the diagram.
        mode: ``SKIP_NESTED_RESOLVE`` returns the unresolved first-pass
            layout; ``FULL_RESOLVE`` resolves collisions against the
            first-pass layouts of all other connectors.
        config: Engine tuning; defaults to ``LayoutEngineConfig()``.

    Returns:
        The connector's layout. The path is empty when an endpoint is
        missing or the connector is a self-loop.
    """
    cfg = config or LayoutEngineConfig()
    scene = Scene(nodes=list(nodes), connectors=list(connectors))
    return _layout_connector(connector, scene, mode, cfg)


def compute_all_connector_paths(
    nodes: Iterable[Node],
    connectors: Iterable[Connector],
    config: Optional[LayoutEngineConfig] = None,
) -> dict[str, ConnectorLayout]:
    """Route every connector, sharing one first-pass snapshot between them.

    Returns layouts keyed by connector id, in input order.
    """
    cfg = config or LayoutEngineConfig()
    scene = Scene(nodes=list(nodes), connectors=list(connectors))
    first_pass = [
        (conn, _layout_connector(conn, scene, ResolutionMode.SKIP_NESTED_RESOLVE, cfg))
        for conn in scene.connectors
    ]
    return {
        conn.id: _layout_connector(conn, scene, ResolutionMode.FULL_RESOLVE, cfg, first_pass)
        for conn in scene.connectors
    }
