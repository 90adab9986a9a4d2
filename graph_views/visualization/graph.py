"""
Graph Visualization Contracts

Responsibility:
Renderable relationship-network view. Positions come from the force
layout; colour, size, label and highlight are fully resolved here so the
rendering surface draws without further logic.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..state import AvailabilityState, ViewportTransform


CATEGORY_COLORS = {
    'person': '#3b82f6',
    'place': '#10b981',
    'organization': '#f59e0b',
    'object': '#8b5cf6',
    'amount': '#ef4444',
    'event': '#64748b',
}
FALLBACK_COLOR = '#64748b'
SELECTED_STROKE = '#1e3a8a'
DEFAULT_STROKE = '#ffffff'
SELECTED_STROKE_WIDTH = 3.0
DEFAULT_STROKE_WIDTH = 1.5
EDGE_COLOR = '#e2e8f0'
EDGE_OPACITY = 0.8
LABEL_MIN_DEGREE = 3
EMPTY_GRAPH_MESSAGE = "No entities to display yet."


def category_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, FALLBACK_COLOR)


@dataclass(frozen=True)
class GraphNode:
    """Renderable graph node."""
    node_id: str
    x: float
    y: float
    radius: float
    color: str
    label: str
    category: str
    degree: int
    opacity: float
    stroke: str
    stroke_width: float
    is_selected: bool
    show_label: bool     # Prominent nodes only; label sits below the node


@dataclass(frozen=True)
class GraphEdge:
    """Renderable graph edge."""
    edge_id: str
    source_id: str
    target_id: str
    category: str
    opacity: float
    label: Optional[str]


@dataclass(frozen=True)
class LegendEntry:
    category: str
    color: str
    count: int


@dataclass(frozen=True)
class NetworkGraphView:
    """
    Positioned network graph.
    EMPTY availability carries a placeholder message instead of nodes.
    """
    view_id: str
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]
    legend: Tuple[LegendEntry, ...]
    transform: ViewportTransform
    selected_id: Optional[str]
    availability: AvailabilityState
    placeholder: Optional[str] = None
