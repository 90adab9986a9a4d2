"""
Visualization Contracts

Renderable, pre-laid-out views. No layout logic happens in the renderer.
"""

from .graph import GraphNode, GraphEdge, LegendEntry, NetworkGraphView
from .timeline import LaneRow, EventCard, DocumentMarker, DocumentLegendEntry, SwimlaneView
from .entity_list import EntityListItem, EntityGroup, EntityListView

__all__ = [
    'GraphNode', 'GraphEdge', 'LegendEntry', 'NetworkGraphView',
    'LaneRow', 'EventCard', 'DocumentMarker', 'DocumentLegendEntry', 'SwimlaneView',
    'EntityListItem', 'EntityGroup', 'EntityListView',
]
