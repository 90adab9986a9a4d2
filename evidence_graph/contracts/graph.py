"""
Graph Contracts

Validated nodes and edges produced by the GraphModel builder.

TYPED PROPERTY BAGS:
====================
Event metadata arrives as an open property map. It is parsed ONCE, at the
model boundary, into `EventDetails` with named optional fields. Nothing
downstream reads raw property keys.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple
import math


DEFAULT_CATEGORY = "other"
EVENT_CATEGORY = "event"


def node_radius(degree: int, min_radius: float = 5.0, scale: float = 5.0) -> float:
    """`max(min_radius, sqrt(max(degree, 1)) * scale)`."""
    return max(min_radius, math.sqrt(max(degree, 1)) * scale)


@dataclass(frozen=True)
class EventDetails:
    """Typed event metadata parsed from an event node's properties."""
    date: Optional[str] = None
    description: Optional[str] = None
    confidence: Optional[float] = None
    document_id: Optional[str] = None
    document_title: Optional[str] = None
    involved_entity_ids: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def from_properties(properties: Mapping[str, Any]) -> EventDetails:
        """Parse a property bag. Wrongly-typed values are treated as absent."""
        involved = []
        raw_involved = properties.get('involved_entities')
        if isinstance(raw_involved, (list, tuple)):
            involved.extend(v for v in raw_involved if isinstance(v, str) and v)
        single = properties.get('entity_id')
        if isinstance(single, str) and single:
            involved.append(single)

        confidence = properties.get('confidence')
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = None

        def text(key: str) -> Optional[str]:
            value = properties.get(key)
            return value if isinstance(value, str) and value else None

        return EventDetails(
            date=text('date'),
            description=text('description'),
            confidence=float(confidence) if confidence is not None else None,
            document_id=text('document_id'),
            document_title=text('document_title'),
            involved_entity_ids=tuple(dict.fromkeys(involved)),
        )


@dataclass(frozen=True)
class Node:
    """
    A graph vertex: an entity or an event.

    `degree` is the number of retained edges touching this node.
    `event` is populated only for nodes in the event category.
    """
    node_id: str
    display_name: str
    category: str
    degree: int
    aliases: Tuple[str, ...] = field(default_factory=tuple)
    document_ids: Tuple[str, ...] = field(default_factory=tuple)
    event: Optional[EventDetails] = None

    @property
    def is_event(self) -> bool:
        return self.event is not None


@dataclass(frozen=True)
class Edge:
    """A typed connection between two nodes that both exist in the model."""
    edge_id: str
    category: str
    source_node_id: str
    target_node_id: str
    description: Optional[str] = None
