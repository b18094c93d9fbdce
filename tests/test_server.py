"""Tests for the MCP server tools (2-tool architecture)."""

import json
import logging

import pytest

from canvas_router import server
from canvas_router.layout_engine import LayoutEngineConfig
from canvas_router.server import inspect, route


NODES = [
    {"id": "a", "x": 0, "y": 0},
    {"id": "b", "x": 300, "y": 0},
]
CONNECTORS = [
    {"id": "ab", "source_id": "a", "destination_id": "b", "label": "calls"},
]


def _xy(points: list[dict]) -> list[tuple[float, float]]:
    return [(p["x"], p["y"]) for p in points]


# ===================================================================
# route
# ===================================================================


def test_route_path() -> None:
    data = json.loads(route(action="path", nodes=NODES, connectors=CONNECTORS, connector_id="ab"))
    assert data["id"] == "ab"
    assert _xy(data["path"]) == [(100, 30), (140, 30), (140, 30), (300, 30)]
    assert data["source_edge"] == "right"
    assert data["destination_edge"] == "left"
    assert data["collisions"] == 0
    assert data["label"]["position"] == {"x": 200, "y": 30}
    assert data["label"]["fraction"] == 0.5


def test_route_path_case_insensitive_action() -> None:
    result = route(action="PATH", nodes=NODES, connectors=CONNECTORS, connector_id="ab")
    assert json.loads(result)["id"] == "ab"


def test_route_all_keeps_input_order() -> None:
    nodes = NODES + [{"id": "c", "x": 150, "y": 250, "width": 120, "height": 80}]
    connectors = [
        {"id": "bc", "source_id": "b", "destination_id": "c"},
        *CONNECTORS,
        {"id": "ca", "source_id": "c", "destination_id": "a", "label": "replies"},
    ]
    data = json.loads(route(action="all", nodes=nodes, connectors=connectors))
    assert [d["id"] for d in data] == ["bc", "ab", "ca"]
    assert all(len(d["path"]) >= 2 for d in data)
    assert all(d["label"] is not None for d in data)


def test_route_all_with_dangling_connector() -> None:
    connectors = CONNECTORS + [{"id": "ag", "source_id": "a", "destination_id": "ghost"}]
    data = json.loads(route(action="all", nodes=NODES, connectors=connectors))
    broken = next(d for d in data if d["id"] == "ag")
    assert broken["path"] == []
    assert broken["label"] is None
    assert "collisions" not in broken


def test_route_all_empty_snapshot() -> None:
    assert json.loads(route(action="all")) == []


def test_route_edges() -> None:
    nodes = NODES + [{"id": "c", "x": 0, "y": 300}]
    connectors = CONNECTORS + [
        {"id": "ac", "source_id": "a", "destination_id": "c"},
        {"id": "ax", "source_id": "a", "destination_id": "missing"},
    ]
    data = json.loads(route(action="edges", nodes=nodes, connectors=connectors))
    assert data == [
        {"id": "ab", "renderable": True, "source_edge": "right", "destination_edge": "left"},
        {"id": "ac", "renderable": True, "source_edge": "bottom", "destination_edge": "top"},
        {"id": "ax", "renderable": False},
    ]


def test_route_detours_around_node() -> None:
    nodes = [
        {"id": "a", "x": 0, "y": 0},
        {"id": "b", "x": 600, "y": 0},
        {"id": "o", "x": 300, "y": 0},
    ]
    connectors = [{"id": "ab", "source_id": "a", "destination_id": "b"}]
    data = json.loads(route(action="path", nodes=nodes, connectors=connectors, connector_id="ab"))
    assert data["collisions"] == 0
    assert len(data["path"]) == 6


def test_route_rejection_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="canvas-router"):
        result = route(action="nope")
    assert result.startswith("Error:")
    assert "route rejected" in caplog.text


# ===================================================================
# inspect
# ===================================================================


def test_inspect_hit_test_connector() -> None:
    data = json.loads(inspect(action="hit_test", nodes=NODES, connectors=CONNECTORS, x=200, y=32))
    assert data == {"connector_id": "ab", "node_id": None}


def test_inspect_hit_test_node() -> None:
    data = json.loads(inspect(action="hit_test", nodes=NODES, connectors=CONNECTORS, x=50, y=30))
    assert data == {"connector_id": None, "node_id": "a"}


def test_inspect_hit_test_tolerance() -> None:
    far = json.loads(inspect(action="hit_test", nodes=NODES, connectors=CONNECTORS,
                             x=240, y=75))
    near = json.loads(inspect(action="hit_test", nodes=NODES, connectors=CONNECTORS,
                              x=240, y=75, tolerance=50))
    assert far["connector_id"] is None
    assert near["connector_id"] == "ab"


def test_inspect_viewport_transforms() -> None:
    canvas = json.loads(inspect(action="to_canvas", x=30, y=50, zoom=2, pan_x=10, pan_y=20))
    assert canvas == {"x": 10, "y": 15}
    screen = json.loads(inspect(action="to_screen", x=10, y=15, zoom=2, pan_x=10, pan_y=20))
    assert screen == {"x": 30, "y": 50}


def test_inspect_to_canvas_with_origin() -> None:
    canvas = json.loads(inspect(action="to_canvas", x=130, y=90, zoom=2,
                                pan_x=10, pan_y=20, origin_x=100, origin_y=50))
    assert canvas == {"x": 10, "y": 10}


def test_inspect_snap() -> None:
    assert json.loads(inspect(action="snap", x=13, y=17)) == {"x": 10, "y": 20}
    assert json.loads(inspect(action="snap", x=13, y=17, grid_size=25)) == {"x": 25, "y": 25}


def test_inspect_arrowheads() -> None:
    connectors = CONNECTORS + [{"id": "ag", "source_id": "a", "destination_id": "ghost"}]
    data = json.loads(inspect(action="arrowheads", nodes=NODES, connectors=connectors))
    assert [d["id"] for d in data] == ["ab"]
    wing1, tip, wing2 = data[0]["points"]
    assert tip == {"x": 300, "y": 30}
    assert wing1["x"] == pytest.approx(300 - 15 * 3 ** 0.5 / 2)
    assert wing1["y"] == pytest.approx(37.5)
    assert wing2["y"] == pytest.approx(22.5)


def test_inspect_defaults_come_from_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "_CONFIG", LayoutEngineConfig(hit_tolerance=50, grid_size=25))
    hit = json.loads(inspect(action="hit_test", nodes=NODES, connectors=CONNECTORS, x=240, y=75))
    assert hit["connector_id"] == "ab"
    assert json.loads(inspect(action="snap", x=13, y=17)) == {"x": 25, "y": 25}
