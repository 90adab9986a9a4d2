"""
Graph Views - layout and correlation engine for the entity/event graph.

Layers (leaves first):
- state: view-state contracts and subscription handles
- layout: force simulation, viewport fitting, swimlane partitioning
- selection / interaction: shared selection and input handling
- visualization + mapper: renderable view contracts
- session: orchestration, fit-on-settle, frame loop
"""

from .layout import (
    ForceLayoutConfig, ForceLayoutEngine, SimulationHandle,
    ViewportFitConfig, ViewportFitter, FitOutcome,
    SwimlaneConfig, SwimlaneLayoutEngine, SwimlaneLayout, AssociationDirection,
)
from .selection import SelectionCoordinator, filter_timeline_events
from .interaction import InteractionConfig, InteractionController, InteractionEvents
from .mapper import ViewMapper
from .session import GraphViewsConfig, GraphViewSession, FrameLoop

__all__ = [
    'ForceLayoutConfig', 'ForceLayoutEngine', 'SimulationHandle',
    'ViewportFitConfig', 'ViewportFitter', 'FitOutcome',
    'SwimlaneConfig', 'SwimlaneLayoutEngine', 'SwimlaneLayout', 'AssociationDirection',
    'SelectionCoordinator', 'filter_timeline_events',
    'InteractionConfig', 'InteractionController', 'InteractionEvents',
    'ViewMapper',
    'GraphViewsConfig', 'GraphViewSession', 'FrameLoop',
]
