"""
Swimlane Visualization Contracts

Responsibility:
Pixel-resolved swimlane timeline. Lane rows, event cards and axis document
markers are computed from a SwimlaneLayout; the rendering surface only draws.

DETERMINISTIC:
Same layout + same documents = identical view.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..state import AvailabilityState


ENTITY_TYPE_COLORS = {
    'person': '#3B6FED',
    'organization': '#D97706',
    'place': '#0D9488',
    'object': '#8B5CF6',
    'amount': '#DC2626',
    'event': '#64748b',
}
ENTITY_TYPE_BACKGROUNDS = {
    'person': '#EEF2FF',
    'organization': '#FFFBEB',
    'place': '#F0FDFA',
    'object': '#F5F3FF',
    'amount': '#FEF2F2',
    'event': '#F8FAFC',
}
LANE_FALLBACK_COLOR = '#8B90A0'
LANE_FALLBACK_BACKGROUND = '#F3F4F6'
CARD_DEFAULT_COLOR = '#3B6FED'

EMPTY_TIMELINE_MESSAGE = "No events extracted yet."
EMPTY_TIMELINE_HINT = "Add documents and run extraction to see the swimlane timeline."
FILTERED_TIMELINE_MESSAGE = "No events involve the selected entity."
FILTERED_TIMELINE_HINT = "Clear the selection to see every event."


@dataclass(frozen=True)
class LaneRow:
    """A lane header and background band."""
    entity_id: str
    row: int
    y: float
    height: float
    label: str           # Truncated display label
    category: str
    color: str
    background: str
    is_selected: bool


@dataclass(frozen=True)
class EventCard:
    """One card: an event placed in one lane."""
    event_id: str
    entity_id: str
    column: int
    x: float
    y: float
    width: float
    height: float
    title: str           # Truncated
    date_text: Optional[str]
    badge: Optional[str]  # Truncated document title
    color: str           # Document colour


@dataclass(frozen=True)
class DocumentMarker:
    """Axis marker at the mean card centre of a document's events."""
    document_id: str
    x: float
    label: str
    color: str


@dataclass(frozen=True)
class DocumentLegendEntry:
    document_id: str
    title: str
    color: str


@dataclass(frozen=True)
class SwimlaneView:
    """
    Fully calculated swimlane view.

    Coordinates are relative to the plot origin (left/top margins applied
    by the renderer); `width` and `height` include margins.
    """
    view_id: str
    lanes: Tuple[LaneRow, ...]
    cards: Tuple[EventCard, ...]
    markers: Tuple[DocumentMarker, ...]
    documents: Tuple[DocumentLegendEntry, ...]
    width: float
    height: float
    uses_fallback_lane: bool
    availability: AvailabilityState
    placeholder: Optional[str] = None
    placeholder_hint: Optional[str] = None
