"""Tests for hover, click and drag interaction."""

import asyncio

import pytest

from relgraph.engine import GraphEngine
from relgraph.interaction import DragPhase, EdgeDetail, NodeDetail, TargetKind

# p1 --e1-- m1 --e2/e3-- m2
#  |                      |
#  e4                     e5
#  |                      |
# p2                      o1
LAYOUT = {
    "p1": (100.0, 100.0),
    "p2": (100.0, 300.0),
    "m1": (300.0, 100.0),
    "m2": (500.0, 100.0),
    "o1": (500.0, 300.0),
}


def place(engine, layout):
    simulation = engine.simulation
    for node_id, xy in layout.items():
        simulation.pos[simulation.index[node_id]] = xy


@pytest.fixture
def engine(fake_fetcher, fast_config):
    engine = GraphEngine(fetcher=fake_fetcher, config=fast_config, autostart=False)
    asyncio.run(engine.initialize())
    place(engine, LAYOUT)
    return engine


@pytest.fixture
def layer(engine):
    return engine.interaction


def test_node_hit_testing(layer):
    """Test finding the node under the pointer."""
    assert layer.node_at(102, 101) == "p1"
    assert layer.node_at(500, 290) == "o1"
    assert layer.node_at(200, 200) is None


def test_edge_hit_testing(layer):
    """Test finding the relationship under the pointer."""
    assert layer.edge_at(200, 103) == "e1"
    assert layer.edge_at(500, 200) == "e5"
    assert layer.edge_at(200, 110) is None


def test_nodes_win_over_edges(layer):
    """Test that a node covering a link endpoint takes precedence."""
    assert layer.target_at(300, 100) == (TargetKind.NODE, "m1")
    assert layer.target_at(100, 200) == (TargetKind.EDGE, "e4")
    assert layer.target_at(0, 0) is None


def test_hover_node_tooltip(layer):
    """Test the tooltip shown for a node."""
    tooltips = []
    layer.on_hover(tooltips.append)

    layer.pointer_move(102, 101)

    assert len(tooltips) == 1
    tooltip = tooltips[0]
    assert tooltip.kind == TargetKind.NODE
    assert tooltip.target_id == "p1"
    assert tooltip.title == "Alice"
    assert tooltip.fields == {"Type": "person", "Description": "Operator"}
    assert (tooltip.x, tooltip.y) == (102, 101)


def test_hover_edge_tooltip(layer):
    """Test the tooltip shown for a relationship."""
    tooltips = []
    layer.on_hover(tooltips.append)

    layer.pointer_move(500, 200)

    tooltip = tooltips[-1]
    assert tooltip.kind == TargetKind.EDGE
    assert tooltip.title == "Line holds robot"
    assert tooltip.fields == {
        "Type": "Contains",
        "Source": "Line A",
        "Target": "Robot",
        "Description": "Cell 4",
    }


def test_pointer_out_hides_tooltip_once(layer):
    """Test that leaving a target emits a single hide."""
    tooltips = []
    layer.on_hover(tooltips.append)

    layer.pointer_move(102, 101)
    layer.pointer_move(200, 200)
    layer.pointer_move(210, 200)

    assert tooltips[-1] is None
    assert tooltips.count(None) == 1
    assert layer.hovered is None


def test_click_node_selects_detail(layer):
    """Test selecting a node by clicking it."""
    selected = []
    layer.on_select(selected.append)

    detail = layer.click(100, 300)

    assert isinstance(detail, NodeDetail)
    assert detail.name == "Bob"
    assert detail.description == "No description"
    assert selected == [detail]


def test_click_edge_selects_detail(layer):
    """Test selecting a relationship and its strength classification."""
    detail = layer.click(500, 200)

    assert isinstance(detail, EdgeDetail)
    assert detail.id == "e5"
    assert detail.type_label == "Contains"
    assert detail.strength == "strong"
    assert detail.source_name == "Line A"
    assert detail.target_name == "Robot"
    assert detail.properties == {"slot": 4}


def test_weak_edge_detail(engine):
    """Test that weak relationship types are reported as weak."""
    detail = engine.edge_detail("e4")

    assert detail.strength == "weak"
    assert detail.type_label == "Collaborates"


def test_click_on_empty_space(layer):
    """Test that clicking nothing selects nothing."""
    selected = []
    layer.on_select(selected.append)

    assert layer.click(200, 200) is None
    assert selected == []


def test_stale_ids_are_ignored(engine, layer):
    """Test that events for ids outside the visible graph are no-ops."""
    tooltips, selected = [], []
    layer.on_hover(tooltips.append)
    layer.on_select(selected.append)

    engine.apply_filter(entity_type="person")

    assert layer.hover_node("m1", 0, 0) is None
    assert layer.hover_edge("e1", 0, 0) is None
    assert layer.select_edge("e1") is None
    assert layer.select_node("ghost") is None
    assert not layer.drag_start("m1")
    assert tooltips == []
    assert selected == []

    # Relationships between visible persons still resolve
    assert layer.select_edge("e4").name == "Team"


def test_unsubscribe(layer):
    """Test removing a handler."""
    selected = []
    unsubscribe = layer.on_select(selected.append)

    unsubscribe()
    unsubscribe()
    layer.click(100, 300)

    assert selected == []


def test_drag_lifecycle(engine, layer):
    """Test pinning, moving and releasing a dragged node."""
    events = []
    layer.on_drag(events.append)
    simulation = engine.simulation
    simulation.run_until_settled()
    place(engine, LAYOUT)

    assert layer.drag_start("m1")
    assert simulation.is_pinned("m1")
    assert simulation.alpha_target == pytest.approx(0.3)
    assert simulation.is_active

    assert layer.drag_move(350, 150)
    for _ in range(5):
        simulation.tick()
        assert simulation.position("m1") == (350.0, 150.0)

    assert layer.drag_end()
    assert not simulation.is_pinned("m1")
    assert simulation.alpha_target == 0.0
    assert simulation.position("m1") == (350.0, 150.0)

    assert [event.phase for event in events] == [DragPhase.START, DragPhase.MOVE, DragPhase.END]
    assert (events[-1].x, events[-1].y) == (350.0, 150.0)


def test_press_and_release(engine, layer):
    """Test dragging through pointer coordinates."""
    assert layer.press(102, 101)
    assert layer.dragging == "p1"

    layer.pointer_move(150, 150)
    assert engine.simulation.pinned_position("p1") == (150.0, 150.0)

    assert layer.release()
    assert layer.dragging is None
    assert not layer.release()
    assert not layer.press(200, 200)


def test_drag_dropped_when_data_replaced(engine, layer):
    """Test that a rebuild cancels an ongoing drag."""
    assert layer.drag_start("p1")

    engine.apply_filter(entity_type="machine")

    assert layer.dragging is None
    assert not layer.drag_move(10, 10)
    assert not layer.drag_end()
