"""
View State Layer

Responsibility:
Immutable view-state contracts shared by the layout engines, the
interaction controller and the renderable views.

PRINCIPLES:
1. Immutable (Frozen)
2. Validated on construction
3. No Rendering Logic
"""

from .core import (
    AvailabilityState, LayoutPosition, ViewportTransform, SimulationStatus,
    SimulationEndReason, Tooltip, TooltipTarget,
)

__all__ = [
    'AvailabilityState', 'LayoutPosition', 'ViewportTransform',
    'SimulationStatus', 'SimulationEndReason', 'Tooltip', 'TooltipTarget',
]
