"""
Swimlane Layout Engine
======================

Converts the entity/event graph into a temporal, lane-partitioned layout.

STEPS:
======
1. Partition nodes: event category -> events, everything else -> entities
2. Associate events with entities, merging
   a. the explicit entity ids parsed from the event's properties
   b. edges of configured association categories, read in the direction
      configured for that category
3. Active lanes = entities referenced by at least one event. With events
   but no associations, a single fallback lane holds every event
4. Lane row = index in the active-lane list (node insertion order)
5. Event column = index after a stable sort: undated first, then by
   ascending lexicographic date string
6. One card per (event, lane) membership

Lanes are never empty: an entity with no events gets no lane.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from evidence_graph.contracts.events import AuditEventType, AuditLogEntry
from evidence_graph.contracts.graph import EVENT_CATEGORY
from evidence_graph.model import GraphModel
from evidence_graph.observability import AuditRecorder


class AssociationDirection(Enum):
    """Which end of an association edge is the event."""
    ENTITY_TO_EVENT = "entity_to_event"   # source is entity, target is event
    EVENT_TO_ENTITY = "event_to_entity"   # source is event, target is entity


def default_association_directions() -> Dict[str, AssociationDirection]:
    return {
        'involves': AssociationDirection.EVENT_TO_ENTITY,
        'has_participant': AssociationDirection.EVENT_TO_ENTITY,
        'involved_in': AssociationDirection.ENTITY_TO_EVENT,
        'related_to': AssociationDirection.ENTITY_TO_EVENT,
    }


DOCUMENT_PALETTE = ('#3B6FED', '#0D9488', '#D97706', '#7C3AED', '#DB2777')


@dataclass
class SwimlaneConfig:
    """Association table, fallback lane and lane geometry."""
    association_directions: Dict[str, AssociationDirection] = field(
        default_factory=default_association_directions
    )
    event_category: str = EVENT_CATEGORY
    fallback_lane_id: str = "__all_events__"
    fallback_lane_label: str = "All Events"

    # Geometry (pixels)
    lane_height: float = 80.0
    lane_gap: float = 4.0
    event_width: float = 160.0
    event_gap: float = 12.0
    card_inset: float = 8.0
    margin_top: float = 40.0
    margin_right: float = 40.0
    margin_bottom: float = 40.0
    margin_left: float = 200.0
    min_width: float = 1100.0
    min_height: float = 600.0

    # Labels
    document_palette: Tuple[str, ...] = DOCUMENT_PALETTE
    lane_label_limit: int = 24
    card_title_limit: int = 28
    badge_limit: int = 14
    date_limit: int = 16
    marker_min_spacing: float = 100.0


# =============================================================================
# LAYOUT CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class SwimlaneEntity:
    """One lane's entity."""
    entity_id: str
    label: str
    category: str
    document_ids: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SwimlaneEvent:
    """An event enriched with the entities it is linked to."""
    event_id: str
    label: str
    entity_ids: Tuple[str, ...]
    date: Optional[str] = None
    description: Optional[str] = None
    confidence: Optional[float] = None
    document_id: Optional[str] = None
    document_title: Optional[str] = None


@dataclass(frozen=True)
class SwimlaneLane:
    entity: SwimlaneEntity
    row: int


@dataclass(frozen=True)
class SwimlaneCard:
    """One visual card: an event placed in one of its lanes."""
    event_id: str
    entity_id: str
    row: int
    column: int


@dataclass(frozen=True)
class SwimlaneLayout:
    """
    Lane rows, ordered event columns and cards.

    `events` is in column order: `events[i]` has column `i`.
    """
    lanes: Tuple[SwimlaneLane, ...]
    events: Tuple[SwimlaneEvent, ...]
    cards: Tuple[SwimlaneCard, ...]
    uses_fallback_lane: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.events

    def column_of(self, event_id: str) -> Optional[int]:
        for i, event in enumerate(self.events):
            if event.event_id == event_id:
                return i
        return None

    def row_of(self, entity_id: str) -> Optional[int]:
        for lane in self.lanes:
            if lane.entity.entity_id == entity_id:
                return lane.row
        return None

    def event(self, event_id: str) -> Optional[SwimlaneEvent]:
        column = self.column_of(event_id)
        return None if column is None else self.events[column]


def sort_events_by_date(events: List[SwimlaneEvent]) -> List[SwimlaneEvent]:
    """Undated events first (relative order kept), then ascending date string."""
    return sorted(events, key=lambda e: (1, e.date) if e.date else (0, ''))


class SwimlaneLayoutEngine:
    """Derives lanes, columns and cards from a GraphModel."""

    def __init__(self, config: Optional[SwimlaneConfig] = None):
        self._config = config or SwimlaneConfig()
        self._audit = AuditRecorder('swimlane', AuditEventType.SWIMLANE)

    @property
    def config(self) -> SwimlaneConfig:
        return self._config

    def layout(self, model: GraphModel) -> SwimlaneLayout:
        entities, events = self._partition(model)
        event_ids = {e.event_id for e in events}

        derived = self._associations_from_edges(model, event_ids)
        enriched = [
            SwimlaneEvent(
                event_id=e.event_id,
                label=e.label,
                entity_ids=tuple(dict.fromkeys(e.entity_ids + derived.get(e.event_id, ()))),
                date=e.date,
                description=e.description,
                confidence=e.confidence,
                document_id=e.document_id,
                document_title=e.document_title,
            )
            for e in events
        ]

        referenced = {eid for e in enriched for eid in e.entity_ids}
        active = [entity for entity in entities if entity.entity_id in referenced]

        uses_fallback = False
        if not active and enriched:
            uses_fallback = True
            active = [SwimlaneEntity(
                entity_id=self._config.fallback_lane_id,
                label=self._config.fallback_lane_label,
                category=self._config.event_category,
            )]
            enriched = [
                SwimlaneEvent(
                    event_id=e.event_id,
                    label=e.label,
                    entity_ids=(self._config.fallback_lane_id,),
                    date=e.date,
                    description=e.description,
                    confidence=e.confidence,
                    document_id=e.document_id,
                    document_title=e.document_title,
                )
                for e in enriched
            ]

        layout = self._arrange(active, sort_events_by_date(enriched), uses_fallback)
        self._audit.record(
            action="swimlane_laid_out",
            metadata=(
                ("lanes", str(len(layout.lanes))),
                ("events", str(len(layout.events))),
                ("cards", str(len(layout.cards))),
                ("fallback_lane", str(uses_fallback).lower()),
            ),
        )
        return layout

    def filter_for_entity(self, layout: SwimlaneLayout, entity_id: Optional[str]) -> SwimlaneLayout:
        """
        Keep only events associated with `entity_id`, re-numbering columns
        and dropping lanes left without cards. `None` returns the layout as is.
        """
        if entity_id is None:
            return layout
        events = [e for e in layout.events if entity_id in e.entity_ids]
        lanes_with_cards = {eid for e in events for eid in e.entity_ids}
        lanes = [lane.entity for lane in layout.lanes if lane.entity.entity_id in lanes_with_cards]
        return self._arrange(lanes, events, layout.uses_fallback_lane)

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.entries()

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _partition(self, model: GraphModel) -> Tuple[List[SwimlaneEntity], List[SwimlaneEvent]]:
        entities: List[SwimlaneEntity] = []
        events: List[SwimlaneEvent] = []
        for node in model.nodes:
            if node.category == self._config.event_category:
                details = node.event
                events.append(SwimlaneEvent(
                    event_id=node.node_id,
                    label=node.display_name,
                    entity_ids=details.involved_entity_ids if details else (),
                    date=details.date if details else None,
                    description=details.description if details else None,
                    confidence=details.confidence if details else None,
                    document_id=details.document_id if details else None,
                    document_title=details.document_title if details else None,
                ))
            else:
                entities.append(SwimlaneEntity(
                    entity_id=node.node_id,
                    label=node.display_name,
                    category=node.category,
                    document_ids=node.document_ids,
                ))
        return entities, events

    def _associations_from_edges(
        self,
        model: GraphModel,
        event_ids: set,
    ) -> Dict[str, Tuple[str, ...]]:
        associations: Dict[str, List[str]] = {}
        for edge in model.edges:
            direction = self._config.association_directions.get(edge.category)
            if direction is None:
                continue
            if direction == AssociationDirection.ENTITY_TO_EVENT:
                entity_id, event_id = edge.source_node_id, edge.target_node_id
            else:
                event_id, entity_id = edge.source_node_id, edge.target_node_id
            if event_id not in event_ids or entity_id in event_ids:
                continue
            associations.setdefault(event_id, []).append(entity_id)
        return {k: tuple(v) for k, v in associations.items()}

    def _arrange(
        self,
        lanes: List[SwimlaneEntity],
        ordered_events: List[SwimlaneEvent],
        uses_fallback: bool,
    ) -> SwimlaneLayout:
        rows = {entity.entity_id: row for row, entity in enumerate(lanes)}
        cards = []
        for column, event in enumerate(ordered_events):
            for entity_id in event.entity_ids:
                row = rows.get(entity_id)
                if row is None:
                    continue
                cards.append(SwimlaneCard(
                    event_id=event.event_id,
                    entity_id=entity_id,
                    row=row,
                    column=column,
                ))
        return SwimlaneLayout(
            lanes=tuple(SwimlaneLane(entity=e, row=i) for i, e in enumerate(lanes)),
            events=tuple(ordered_events),
            cards=tuple(cards),
            uses_fallback_lane=uses_fallback,
        )
