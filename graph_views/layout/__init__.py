"""
Layout Engines

- force: physics simulation for the relationship network
- viewport: zoom-to-fit transform
- swimlane: lane/column partitioning for the swimlane timeline
"""

from .force import (
    ForceLayoutConfig, ForceLayoutEngine, SimulationHandle, SimulationFrame, SimulationEnd,
)
from .viewport import ViewportFitConfig, ViewportFitter, FitOutcome, BoundingBox
from .swimlane import (
    SwimlaneConfig, SwimlaneLayoutEngine, SwimlaneLayout, SwimlaneLane, SwimlaneCard,
    SwimlaneEntity, SwimlaneEvent, AssociationDirection, sort_events_by_date,
)

__all__ = [
    'ForceLayoutConfig', 'ForceLayoutEngine', 'SimulationHandle', 'SimulationFrame', 'SimulationEnd',
    'ViewportFitConfig', 'ViewportFitter', 'FitOutcome', 'BoundingBox',
    'SwimlaneConfig', 'SwimlaneLayoutEngine', 'SwimlaneLayout', 'SwimlaneLane', 'SwimlaneCard',
    'SwimlaneEntity', 'SwimlaneEvent', 'AssociationDirection', 'sort_events_by_date',
]
