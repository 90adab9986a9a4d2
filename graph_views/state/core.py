"""
Core View-State Types

Foundational enums and value types for the views.

EXPLICIT STATE:
===============
Empty graphs, skipped fits and forced simulation stops are flagged with
explicit states, never inferred from missing data.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import math


# =============================================================================
# AVAILABILITY STATES (Explicit Absence)
# =============================================================================

class AvailabilityState(Enum):
    """Availability of a rendered view."""
    PRESENT = "present"     # Content available
    EMPTY = "empty"         # Nothing to render; show placeholder
    FILTERED = "filtered"   # Content exists but the current selection hides all of it


# =============================================================================
# SIMULATION STATES
# =============================================================================

class SimulationStatus(Enum):
    """Lifecycle of a force simulation handle."""
    RUNNING = "running"
    CONVERGED = "converged"     # Ended (alpha decay or iteration cap)
    STOPPED = "stopped"         # Stopped by its owner or superseded


class SimulationEndReason(Enum):
    """Why a simulation stopped stepping."""
    ALPHA_DECAYED = "alpha_decayed"
    ITERATION_CAP = "iteration_cap"
    EMPTY_GRAPH = "empty_graph"
    STOPPED = "stopped"
    SUPERSEDED = "superseded"


# =============================================================================
# GEOMETRY
# =============================================================================

@dataclass(frozen=True)
class LayoutPosition:
    """A published node position. Read-only outside the force engine."""
    x: float
    y: float

    def __post_init__(self):
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise ValueError("LayoutPosition coordinates must be finite")


@dataclass(frozen=True)
class ViewportTransform:
    """
    Screen transform: `screen = graph * scale + translate`.
    """
    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = 1.0

    def __post_init__(self):
        if not all(math.isfinite(v) for v in (self.translate_x, self.translate_y, self.scale)):
            raise ValueError("ViewportTransform values must be finite")
        if self.scale <= 0:
            raise ValueError("ViewportTransform scale must be positive")

    @staticmethod
    def identity() -> ViewportTransform:
        return ViewportTransform()

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        """Graph coordinates to screen coordinates."""
        return (x * self.scale + self.translate_x, y * self.scale + self.translate_y)

    def invert(self, screen_x: float, screen_y: float) -> Tuple[float, float]:
        """Screen coordinates to graph coordinates."""
        return (
            (screen_x - self.translate_x) / self.scale,
            (screen_y - self.translate_y) / self.scale,
        )

    def translated(self, dx: float, dy: float) -> ViewportTransform:
        return ViewportTransform(self.translate_x + dx, self.translate_y + dy, self.scale)


# =============================================================================
# TOOLTIP (transient, presentational)
# =============================================================================

class TooltipTarget(Enum):
    NODE = "node"
    EDGE = "edge"


@dataclass(frozen=True)
class Tooltip:
    """Hover detail for a node or edge. Carries no state forward."""
    target: TooltipTarget
    target_id: str
    title: str
    subtitle: str
    detail: Optional[str] = None
