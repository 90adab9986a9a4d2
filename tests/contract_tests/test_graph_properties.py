"""
Property Tests for the Graph Views
Verifies model, layout, fit, swimlane and selection invariants over
generated inputs.
"""

import math

from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from evidence_graph.model import GraphModelBuilder
from graph_views.layout.force import ForceLayoutConfig, ForceLayoutEngine
from graph_views.layout.swimlane import SwimlaneEvent, SwimlaneLayoutEngine, sort_events_by_date
from graph_views.layout.viewport import ViewportFitter
from graph_views.selection import SelectionCoordinator
from graph_views.state import LayoutPosition, SimulationEndReason

# =============================================================================
# STRATEGIES (Generators)
# =============================================================================

CATEGORIES = ["person", "place", "organization", "object", "amount", "", "Person"]
node_ids = st.text(alphabet="abcdefgh", min_size=1, max_size=3)


@composite
def entity_graphs(draw, max_nodes=12):
    """Raw entity/relationship records, some edges dangling."""
    ids = draw(st.lists(node_ids, min_size=0, max_size=max_nodes))
    entities = [
        {"id": nid, "name": nid.upper(), "category": draw(st.sampled_from(CATEGORIES))}
        for nid in ids
    ]
    endpoints = st.one_of(st.sampled_from(ids), node_ids) if ids else node_ids
    relationships = [
        {"id": f"r{i}", "category": "knows", "entityAId": draw(endpoints), "entityBId": draw(endpoints)}
        for i in range(draw(st.integers(min_value=0, max_value=20)))
    ]
    return entities, relationships


@composite
def point_clouds(draw):
    coords = st.floats(min_value=-1e4, max_value=1e4, allow_nan=False, allow_infinity=False)
    points = draw(st.lists(st.tuples(coords, coords), min_size=2, max_size=30))
    return {f"n{i}": LayoutPosition(x, y) for i, (x, y) in enumerate(points)}


dates = st.one_of(st.none(), st.sampled_from(["1805-01-01", "1805-03-01", "1798-08-01", "1805-10-21"]))


# =============================================================================
# MODEL INVARIANTS
# =============================================================================

@given(entity_graphs())
def test_retained_edges_have_both_endpoints(graph):
    model = GraphModelBuilder().from_entities(*graph)
    ids = set(model.node_ids)
    for e in model.edges:
        assert e.source_node_id in ids
        assert e.target_node_id in ids


@given(entity_graphs())
def test_degree_counts_touching_edges(graph):
    model = GraphModelBuilder().from_entities(*graph)
    for nid in model.node_ids:
        touching = sum(
            (e.source_node_id == nid) + (e.target_node_id == nid) for e in model.edges
        )
        assert model.degree[nid] == touching


@given(entity_graphs())
def test_radius_monotonic_in_degree(graph):
    model = GraphModelBuilder().from_entities(*graph)
    for a in model.node_ids:
        for b in model.node_ids:
            if model.degree[a] > max(model.degree[b], 1):
                assert model.radius(a) > model.radius(b)


# =============================================================================
# LAYOUT INVARIANTS
# =============================================================================

@settings(max_examples=25, deadline=None)
@given(entity_graphs(max_nodes=8), st.floats(min_value=0.0, max_value=0.1))
def test_simulation_halts_within_cap(graph, decay):
    model = GraphModelBuilder().from_entities(*graph)
    config = ForceLayoutConfig(seed=1, alpha_decay=decay, max_iterations=60)
    handle = ForceLayoutEngine(config).start(model, 640, 480)
    reason = handle.run()
    assert reason in (
        SimulationEndReason.ALPHA_DECAYED,
        SimulationEndReason.ITERATION_CAP,
        SimulationEndReason.EMPTY_GRAPH,
    )
    assert handle.iteration <= 60
    for p in handle.positions().values():
        assert math.isfinite(p.x) and math.isfinite(p.y)


@given(point_clouds(), st.integers(min_value=200, max_value=2000), st.integers(min_value=200, max_value=2000))
def test_fit_keeps_box_inside_padding(points, width, height):
    outcome = ViewportFitter().fit(points, width, height)
    if not outcome.applied:
        xs = [p.x for p in points.values()]
        ys = [p.y for p in points.values()]
        assert max(xs) == min(xs) or max(ys) == min(ys)
        return
    t = outcome.transform
    assert t.scale <= 1.2
    tolerance = 1e-6 * max(width, height)
    for p in points.values():
        x, y = t.apply(p.x, p.y)
        assert 40 - tolerance <= x <= width - 40 + tolerance
        assert 40 - tolerance <= y <= height - 40 + tolerance


# =============================================================================
# SWIMLANE INVARIANTS
# =============================================================================

@given(st.lists(dates, max_size=15))
def test_sort_places_undated_first_and_orders_dates(event_dates):
    events = [SwimlaneEvent(f"e{i}", f"e{i}", (), date=d) for i, d in enumerate(event_dates)]
    ordered = sort_events_by_date(events)
    undated = [e for e in ordered if e.date is None]
    dated = [e.date for e in ordered if e.date is not None]
    assert ordered[:len(undated)] == undated
    assert [e.event_id for e in undated] == [e.event_id for e in events if e.date is None]
    assert dated == sorted(dated)


@given(st.lists(dates, min_size=1, max_size=10))
def test_unassociated_events_share_one_fallback_lane(event_dates):
    nodes = [{"id": "x", "label": "X", "category": "person", "properties": {}}]
    nodes += [
        {"id": f"ev{i}", "label": f"Event {i}", "category": "event",
         "properties": {"date": d} if d else {}}
        for i, d in enumerate(event_dates)
    ]
    layout = SwimlaneLayoutEngine().layout(GraphModelBuilder().from_export(nodes, []))
    assert layout.uses_fallback_lane
    assert len(layout.lanes) == 1
    assert {c.event_id for c in layout.cards} == {f"ev{i}" for i in range(len(event_dates))}


# =============================================================================
# SELECTION INVARIANTS
# =============================================================================

@given(st.lists(st.one_of(st.none(), st.sampled_from(["a", "b", "c"])), max_size=20))
def test_selection_toggle_semantics(actions):
    coordinator = SelectionCoordinator()
    expected = None
    for action in actions:
        if action is None:
            coordinator.clear()
            expected = None
        else:
            coordinator.select(action)
            expected = None if expected == action else action
        assert coordinator.selected == expected
