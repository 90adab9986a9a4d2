"""
Graph View Session

Orchestrates model construction, layout, fitting, selection and
interaction for one mounted set of views.

LAYER FLOW:
===========
1. Model: raw records -> GraphModel (dangling edges dropped, degree computed)
2. Layout: GraphModel -> force simulation handle + swimlane layout
3. Fit: on the first settle of each simulation generation only
4. Selection: one shared selected id, reset when the data changes
5. Views: model + positions + selection -> renderable view contracts
6. Observability: every component's audit log and metrics, collected after
   each operation

RESOURCE OWNERSHIP:
===================
The session owns every Subscription it creates and the live simulation.
`unmount` disposes all of them; nothing outlives the session.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Union
import asyncio

from evidence_graph.contracts.base import Error, ErrorCode, Result
from evidence_graph.contracts.records import TimelineEventRecord
from evidence_graph.model import GraphModel, GraphModelBuilder, GraphModelConfig
from evidence_graph.observability import ObservabilityConfig, ObservabilityEngine

from .interaction import InteractionConfig, InteractionController
from .layout.force import ForceLayoutConfig, ForceLayoutEngine, SimulationEnd, SimulationHandle
from .layout.swimlane import SwimlaneConfig, SwimlaneLayout, SwimlaneLayoutEngine, SwimlaneEvent
from .layout.viewport import FitOutcome, ViewportFitConfig, ViewportFitter
from .mapper import ViewMapper
from .selection import SelectionCoordinator, SelectionListener, filter_timeline_events
from .state import SimulationEndReason
from .state.subscription import ListenerRegistry, Subscription
from .visualization.entity_list import EntityListView
from .visualization.graph import NetworkGraphView
from .visualization.timeline import SwimlaneView


@dataclass
class GraphViewsConfig:
    """Unified configuration for every component of the views."""
    model: GraphModelConfig = None
    layout: ForceLayoutConfig = None
    viewport: ViewportFitConfig = None
    swimlane: SwimlaneConfig = None
    interaction: InteractionConfig = None
    observability: ObservabilityConfig = None
    frame_interval: float = 1.0 / 60.0

    def __post_init__(self):
        self.model = self.model or GraphModelConfig()
        self.layout = self.layout or ForceLayoutConfig()
        self.viewport = self.viewport or ViewportFitConfig()
        self.swimlane = self.swimlane or SwimlaneConfig()
        self.interaction = self.interaction or InteractionConfig()
        self.observability = self.observability or ObservabilityConfig()


EventClickPayload = Union[SwimlaneEvent, TimelineEventRecord]


class GraphViewSession:
    """
    One mounted graph + swimlane + entity-list view set.

    Data changes (`load_entities`, `load_export`) rebuild the model, reset
    the selection and restart the simulation; the previous simulation is
    stopped before the new one starts.
    """

    def __init__(
        self,
        config: Optional[GraphViewsConfig] = None,
        width: float = 800.0,
        height: float = 600.0,
    ):
        self._config = config or GraphViewsConfig()
        self._width = width
        self._height = height

        self._builder = GraphModelBuilder(self._config.model)
        self._layout = ForceLayoutEngine(self._config.layout)
        self._fitter = ViewportFitter(self._config.viewport)
        self._swimlanes = SwimlaneLayoutEngine(self._config.swimlane)
        self._selection = SelectionCoordinator()
        self._controller = InteractionController(self._selection, self._config.interaction)
        self._mapper = ViewMapper(self._config.swimlane, self._config.interaction.dimmed_opacity)
        self._observability = ObservabilityEngine(self._config.observability)

        self._model = GraphModel.empty()
        self._handle: Optional[SimulationHandle] = None
        self._swimlane_layout = self._swimlanes.layout(self._model)
        self._documents: Optional[List[Any]] = None
        self._fitted_generation: Optional[int] = None
        self._last_fit: Optional[FitOutcome] = None

        self._subscriptions: List[Subscription] = []
        self._handle_subscriptions: List[Subscription] = []
        self._event_click_listeners: ListenerRegistry[EventClickPayload] = ListenerRegistry()
        self._mounted = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self._subscriptions.append(self._selection.on_change(self._on_selection_change))

    def unmount(self) -> None:
        """Stop the simulation and dispose every subscription the session holds."""
        self._layout.stop()
        for subscription in self._subscriptions + self._handle_subscriptions:
            subscription.dispose()
        self._subscriptions = []
        self._handle_subscriptions = []
        self._event_click_listeners.clear()
        self._selection.reset()
        self._mounted = False
        self._sync_observability()

    def resize(self, width: float, height: float) -> None:
        """New viewport size. Used by the next simulation and fit."""
        self._width = width
        self._height = height

    # =========================================================================
    # DATA CHANGES
    # =========================================================================

    def load_entities(
        self,
        entities: Any,
        relationships: Any,
        documents: Optional[Iterable[Any]] = None,
    ) -> GraphModel:
        return self._apply(self._builder.from_entities(entities, relationships), documents)

    def load_export(
        self,
        nodes: Any,
        edges: Any,
        documents: Optional[Iterable[Any]] = None,
    ) -> GraphModel:
        return self._apply(self._builder.from_export(nodes, edges), documents)

    def _apply(self, model: GraphModel, documents: Optional[Iterable[Any]]) -> GraphModel:
        self._model = model
        self._documents = list(documents) if documents is not None else None
        self._selection.reset()

        for subscription in self._handle_subscriptions:
            subscription.dispose()
        handle = self._layout.start(model, self._width, self._height)
        self._handle = handle
        self._handle_subscriptions = [handle.on_end(self._on_simulation_end)]
        self._fitted_generation = None

        self._controller.bind(model, handle)
        self._swimlane_layout = self._swimlanes.layout(model)

        dropped = sum(1 for d in model.diagnostics if d.code == ErrorCode.DANGLING_EDGE)
        self._observability.collect_metric("edges_dropped_total", dropped)
        self._observability.collect_metric("graph_node_count", len(model.nodes))
        if self._swimlane_layout.uses_fallback_lane:
            self._observability.collect_metric("swimlane_fallback_lane_total", 1)
        self._sync_observability()
        return model

    # =========================================================================
    # SIMULATION
    # =========================================================================

    @property
    def handle(self) -> Optional[SimulationHandle]:
        return self._handle

    def tick(self) -> bool:
        """Advance the live simulation one frame. True once it is no longer running."""
        if self._handle is None:
            return True
        done = self._handle.tick()
        if done:
            self._sync_observability()
        return done

    def settle(self) -> Optional[SimulationEndReason]:
        """Step the live simulation to the end synchronously."""
        if self._handle is None:
            return None
        reason = self._handle.run()
        self._sync_observability()
        return reason

    def fit_now(self) -> FitOutcome:
        """Explicit fit, for a caller that decides the layout is good enough."""
        positions = self._handle.positions() if self._handle is not None else {}
        outcome = self._fitter.fit(positions, self._width, self._height, self._controller.transform)
        self._last_fit = outcome
        if outcome.applied:
            self._controller.set_transform(outcome.transform)
        else:
            self._observability.collect_metric("viewport_fit_skipped_total", 1)
        self._sync_observability()
        return outcome

    @property
    def last_fit(self) -> Optional[FitOutcome]:
        return self._last_fit

    def _on_simulation_end(self, end: SimulationEnd) -> None:
        if end.reason == SimulationEndReason.ALPHA_DECAYED:
            self._observability.collect_metric("simulation_converged_total", 1)
        elif end.reason == SimulationEndReason.ITERATION_CAP:
            self._observability.collect_metric("simulation_cap_reached_total", 1)

        settled = end.reason in (SimulationEndReason.ALPHA_DECAYED, SimulationEndReason.ITERATION_CAP)
        handle = self._handle
        if not settled or handle is None or handle.generation != end.generation:
            return
        if self._fitted_generation == end.generation:
            return
        if self._controller.dragging is not None:
            # Deferred to the first settle after the pointer is released
            return
        self._fitted_generation = end.generation
        self.fit_now()

    # =========================================================================
    # SELECTION & CALLBACKS
    # =========================================================================

    @property
    def selection(self) -> SelectionCoordinator:
        return self._selection

    @property
    def controller(self) -> InteractionController:
        return self._controller

    def on_selection_change(self, listener: SelectionListener) -> Subscription:
        subscription = self._selection.on_change(listener)
        self._subscriptions.append(subscription)
        return subscription

    def on_event_click(self, listener: Callable[[EventClickPayload], None]) -> Subscription:
        subscription = self._event_click_listeners.subscribe(listener)
        self._subscriptions.append(subscription)
        return subscription

    def click_event(self, event: Union[str, TimelineEventRecord]) -> Result:
        """Report a swimlane card (by event id) or timeline event click to listeners."""
        if isinstance(event, TimelineEventRecord):
            self._event_click_listeners.notify(event)
            return Result.success(event)
        swimlane_event = self._swimlane_layout.event(event)
        if swimlane_event is None:
            return Result.failure(Error.create(
                ErrorCode.UNKNOWN_NODE, "Event not in swimlane layout", event_id=event
            ))
        self._event_click_listeners.notify(swimlane_event)
        return Result.success(swimlane_event)

    def _on_selection_change(self, entity_id: Optional[str]) -> None:
        self._observability.collect_metric(
            "selection_changes_total",
            self._selection.drain_change_count(),
            {"state": "selected" if entity_id is not None else "cleared"},
        )

    # =========================================================================
    # VIEWS
    # =========================================================================

    @property
    def model(self) -> GraphModel:
        return self._model

    @property
    def swimlane_layout(self) -> SwimlaneLayout:
        return self._swimlane_layout

    def network_view(self) -> NetworkGraphView:
        positions = self._handle.positions() if self._handle is not None else {}
        return self._mapper.map_network(
            self._model, positions, self._selection.selected, self._controller.transform,
        )

    def swimlane_view(self) -> SwimlaneView:
        """Swimlane view, filtered to the selected entity's events when one is selected."""
        layout = self._swimlane_layout
        selected = self._selection.selected
        node = self._model.node(selected) if selected is not None else None
        filtered = node is not None and not node.is_event and not layout.is_empty
        if filtered:
            layout = self._swimlanes.filter_for_entity(layout, selected)
        return self._mapper.map_swimlane(layout, self._documents, selected, filtered=filtered)

    def entity_list_view(self, query: str = "") -> EntityListView:
        return self._mapper.map_entity_list(self._model, query, self._selection.selected)

    def filter_timeline(self, events: Iterable[Any]) -> List[TimelineEventRecord]:
        """Timeline events for the current selection (all of them with no selection)."""
        records = []
        for raw in events:
            record = raw if isinstance(raw, TimelineEventRecord) else TimelineEventRecord.from_mapping(raw)
            if record is not None:
                records.append(record)
        selected = self._selection.selected
        if selected is None:
            return records
        node = self._model.node(selected)
        name = node.display_name if node is not None else None
        aliases = node.aliases if node is not None else ()
        return filter_timeline_events(records, selected, name, aliases)

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    def _sync_observability(self) -> None:
        ticks = self._layout.drain_tick_count()
        if ticks:
            self._observability.collect_metric("simulation_ticks_total", ticks)
        for recorder in (
            self._builder.audit,
            self._layout.audit,
            self._fitter.audit,
            self._swimlanes.audit,
            self._selection.audit,
            self._controller.audit,
        ):
            self._observability.collect_from(recorder)


# =============================================================================
# FRAME LOOP
# =============================================================================

class FrameLoop:
    """
    Steps a simulation once per frame interval on the running event loop.

    The loop ends when the handle stops running (settled, stopped or
    superseded) or after `max_frames` frames.
    """

    def __init__(self, interval: float = 1.0 / 60.0):
        self._interval = interval

    async def run(
        self,
        handle: SimulationHandle,
        max_frames: Optional[int] = None,
    ) -> Optional[SimulationEndReason]:
        frames = 0
        while not handle.tick():
            frames += 1
            if max_frames is not None and frames >= max_frames:
                break
            await asyncio.sleep(self._interval)
        return handle.end_reason

    async def run_session(
        self,
        session: GraphViewSession,
        max_frames: Optional[int] = None,
    ) -> Optional[SimulationEndReason]:
        """Step the session's live simulation; observability is synced at the end."""
        frames = 0
        while not session.tick():
            frames += 1
            if max_frames is not None and frames >= max_frames:
                break
            await asyncio.sleep(self._interval)
        return session.handle.end_reason if session.handle is not None else None
