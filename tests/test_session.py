"""
Session Integration Tests
=========================

End-to-end flow: load -> simulate -> fit on settle -> select -> views.

VERIFICATION:
=============
1. The fit runs once per simulation generation, after it settles
2. A data change resets the selection and supersedes the simulation
3. Unmount stops the simulation and disposes every subscription
4. Every component's audit log reaches the observability engine
"""

import asyncio

import pytest

from graph_views.layout.viewport import ViewportFitConfig
from graph_views.session import FrameLoop, GraphViewSession, GraphViewsConfig
from graph_views.state import AvailabilityState, SimulationEndReason, ViewportTransform

from tests.fixtures import (
    chain_records, nelson_export, star_model, fast_layout_config, entity, events_only_export,
)


@pytest.fixture
def session():
    config = GraphViewsConfig(layout=fast_layout_config())
    s = GraphViewSession(config, width=800, height=600)
    s.mount()
    yield s
    s.unmount()


class TestConfig:

    def test_defaults_filled(self):
        config = GraphViewsConfig()
        assert config.viewport.padding == 40
        assert config.interaction.min_zoom == 0.15
        assert config.swimlane.fallback_lane_label == "All Events"
        assert config.layout.max_iterations == 1000


class TestFitOnSettle:

    def test_fit_after_convergence(self, session):
        session.load_entities(*chain_records())
        assert session.last_fit is None
        session.settle()
        assert session.last_fit is not None
        assert session.last_fit.applied
        assert session.controller.transform == session.last_fit.transform

    def test_fitted_positions_inside_padding(self, session):
        session.load_entities(*chain_records())
        session.settle()
        t = session.controller.transform
        for p in session.handle.positions().values():
            x, y = t.apply(p.x, p.y)
            assert 40 - 1e-6 <= x <= 760 + 1e-6
            assert 40 - 1e-6 <= y <= 560 + 1e-6

    def test_no_refit_after_drag(self, session):
        session.load_entities(*chain_records())
        session.settle()
        session.controller.on_pan(25, 0)
        panned = session.controller.transform

        session.controller.on_node_drag_start("A", 100, 100)
        session.controller.on_node_drag_end("A")
        session.settle()
        assert session.controller.transform == panned

    def test_no_fit_mid_simulation(self, session):
        session.load_entities(*chain_records())
        for _ in range(5):
            session.tick()
        assert session.last_fit is None
        assert session.controller.transform == ViewportTransform.identity()

    def test_single_node_fit_skipped(self, session):
        session.load_entities([entity("A", "Alone")], [])
        session.settle()
        assert not session.last_fit.applied
        assert session.controller.transform == ViewportTransform.identity()
        metrics = session.observability.get_metrics()
        assert metrics.total("viewport_fit_skipped_total") == 1

    def test_empty_graph_never_fits(self, session):
        session.load_entities([], [])
        assert session.settle() == SimulationEndReason.EMPTY_GRAPH
        assert session.last_fit is None
        assert session.network_view().availability == AvailabilityState.EMPTY

    def test_fit_deferred_while_dragging(self):
        session = GraphViewSession(GraphViewsConfig(layout=fast_layout_config(max_iterations=100)))
        session.mount()
        session.load_entities(*chain_records())
        for _ in range(90):
            session.tick()

        session.controller.on_node_drag_start("A", 300, 300)
        for step in range(20):
            session.controller.on_node_drag_move("A", 300 + step, 300)
            session.tick()
        assert session.handle.is_running
        assert session.last_fit is None

        # Pointer held still until the cap ends the episode
        while not session.tick():
            pass
        assert session.handle.end_reason == SimulationEndReason.ITERATION_CAP
        assert session.last_fit is None

        session.controller.on_node_drag_end("A")
        assert session.handle.is_running
        session.settle()
        assert session.last_fit is not None
        assert session.last_fit.applied
        session.unmount()

    def test_explicit_fit(self, session):
        session.load_entities(*chain_records())
        session.tick()
        assert session.fit_now().applied


class TestDataChanges:

    def test_reload_resets_selection(self, session):
        seen = []
        session.on_selection_change(seen.append)
        session.load_entities(*chain_records())
        session.controller.on_node_click("B")
        session.load_entities(*chain_records())
        assert session.selection.selected is None
        assert seen == ["B", None]

    def test_reload_supersedes_simulation(self, session):
        session.load_entities(*chain_records())
        first = session.handle
        session.load_entities(*chain_records())
        assert first.end_reason == SimulationEndReason.SUPERSEDED
        assert session.handle is not first
        assert session.handle.is_current()

    def test_unmount_stops_everything(self, session):
        seen = []
        session.load_entities(*chain_records())
        subscription = session.on_selection_change(seen.append)
        handle = session.handle
        session.unmount()
        assert not session.mounted
        assert handle.end_reason == SimulationEndReason.STOPPED
        assert not subscription.active
        session.selection.select("A")
        assert seen == []
        assert session.tick() is True


    def test_remount_starts_without_selection(self, session):
        session.load_entities(*chain_records())
        session.controller.on_node_click("B")
        session.unmount()
        session.mount()
        assert session.selection.selected is None

class TestViews:

    def test_network_view_dims_unselected(self, session):
        session.load_entities(*chain_records())
        session.settle()
        session.controller.on_node_click("B")
        view = session.network_view()
        by_id = {n.node_id: n for n in view.nodes}
        assert by_id["B"].opacity == 1.0
        assert by_id["B"].is_selected
        assert by_id["A"].opacity == 0.35
        assert len(view.nodes) == 3

    def test_swimlane_filtered_by_selection(self, session):
        session.load_export(*nelson_export())
        session.selection.select("villeneuve")
        view = session.swimlane_view()
        assert {c.event_id for c in view.cards} == {"ev_blockade"}

    def test_event_selection_leaves_swimlane_unfiltered(self, session):
        session.load_export(*nelson_export())
        session.selection.select("ev_letter")
        assert len(session.swimlane_view().cards) == 4

    def test_selection_hiding_every_event_is_not_empty_state(self, session):
        session.load_export(*events_only_export())
        session.selection.select("x")
        view = session.swimlane_view()
        assert view.availability == AvailabilityState.FILTERED
        assert view.placeholder == "No events involve the selected entity."
        session.selection.clear()
        assert session.swimlane_view().availability == AvailabilityState.PRESENT

    def test_no_events_keeps_empty_state_under_selection(self, session):
        session.load_entities(*chain_records())
        session.selection.select("A")
        view = session.swimlane_view()
        assert view.availability == AvailabilityState.EMPTY
        assert view.placeholder == "No events extracted yet."

    def test_entity_list_excludes_events(self, session):
        session.load_export(*nelson_export())
        view = session.entity_list_view()
        assert view.total == 4

    def test_timeline_filter_uses_selected_aliases(self, session):
        session.load_entities(
            [entity("X", "Robert", aliases=["Bob"]), entity("Y", "Yvonne")], []
        )
        events = [{"id": "t1", "title": "Travel", "description": "bob's trip"}]
        session.selection.select("X")
        assert [e.event_id for e in session.filter_timeline(events)] == ["t1"]
        session.selection.select("Y")
        assert session.filter_timeline(events) == []


class TestEventClicks:

    def test_swimlane_event_click(self, session):
        session.load_export(*nelson_export())
        clicked = []
        session.on_event_click(clicked.append)
        assert session.click_event("ev_trafalgar").is_success
        assert clicked[0].event_id == "ev_trafalgar"

    def test_unknown_event_click(self, session):
        session.load_export(*nelson_export())
        assert session.click_event("nope").is_failure


class TestObservability:

    def test_layers_collected(self, session):
        session.load_entities(*chain_records())
        session.settle()
        session.controller.on_node_click("A")
        session.controller.on_node_drag_start("A", 0, 0)
        session.unmount()
        report = session.observability.generate_audit_report()
        for layer in ("model", "layout", "swimlane", "selection", "interaction"):
            assert report["by_layer"].get(layer, 0) > 0

    def test_metrics_recorded(self, session):
        session.load_entities(
            [entity("A", "A"), entity("B", "B")],
            [{"id": "r", "category": "knows", "entityAId": "A", "entityBId": "ghost"}],
        )
        session.settle()
        metrics = session.observability.get_metrics()
        assert metrics.total("edges_dropped_total") == 1
        assert metrics.get_latest("graph_node_count").value == 2
        assert metrics.total("simulation_ticks_total") == session.handle.total_ticks
        assert metrics.total("simulation_converged_total") == 1

    def test_fallback_lane_metric(self, session):
        session.load_export(*events_only_export())
        assert session.observability.get_metrics().total("swimlane_fallback_lane_total") == 1


class TestFrameLoop:

    def test_loop_runs_until_settled(self):
        session = GraphViewSession(GraphViewsConfig(layout=fast_layout_config()))
        session.load_entities(*chain_records())
        reason = asyncio.run(FrameLoop(interval=0).run_session(session))
        assert reason == SimulationEndReason.ALPHA_DECAYED
        assert session.last_fit is not None

    def test_loop_stops_with_handle(self):
        from graph_views.layout.force import ForceLayoutEngine
        engine = ForceLayoutEngine(fast_layout_config())
        handle = engine.start(star_model(), 800, 600)

        async def run_and_stop():
            task = asyncio.ensure_future(FrameLoop(interval=0).run(handle))
            await asyncio.sleep(0)
            handle.stop()
            return await task

        assert asyncio.run(run_and_stop()) == SimulationEndReason.STOPPED

    def test_max_frames(self):
        from graph_views.layout.force import ForceLayoutEngine
        handle = ForceLayoutEngine(fast_layout_config()).start(star_model(), 800, 600)
        assert asyncio.run(FrameLoop(interval=0).run(handle, max_frames=3)) is None
        assert handle.iteration == 3
        assert handle.is_running
