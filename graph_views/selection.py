"""
Selection Coordinator

Responsibility:
Own the single optional selected entity id shared by every view and
broadcast each change synchronously to subscribers.

TOGGLE SEMANTICS:
=================
Selecting the id that is already selected clears the selection.

TIMELINE FILTER:
================
An event is included for the selected entity if
  (a) one of its explicit entity associations has the selected id, OR
  (b) it has NO explicit associations, and the entity's display name or
      any alias is a case-insensitive substring of its title or description.
(b) is a heuristic for sparse association data, not a correctness guarantee.
"""

from __future__ import annotations
from typing import Callable, Iterable, List, Optional, Sequence

from evidence_graph.contracts.events import AuditEventType, AuditLogEntry
from evidence_graph.contracts.records import TimelineEventRecord
from evidence_graph.observability import AuditRecorder

from .state.subscription import ListenerRegistry, Subscription


SelectionListener = Callable[[Optional[str]], None]


class SelectionCoordinator:
    """Single source of truth for the selected entity."""

    def __init__(self):
        self._selected: Optional[str] = None
        self._listeners: ListenerRegistry[Optional[str]] = ListenerRegistry()
        self._audit = AuditRecorder('selection', AuditEventType.SELECTION)
        self._changes_since_drain = 0

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    def is_selected(self, entity_id: str) -> bool:
        return self._selected is not None and self._selected == entity_id

    def on_change(self, listener: SelectionListener) -> Subscription:
        """Subscribe to selection changes: `(entity_id | None) -> None`."""
        return self._listeners.subscribe(listener)

    def select(self, entity_id: str) -> Optional[str]:
        """Select `entity_id`, or clear if it is already selected. Returns the new selection."""
        if entity_id == self._selected:
            self._set(None, "selection_toggled_off")
        else:
            self._set(entity_id, "entity_selected")
        return self._selected

    def clear(self) -> None:
        self._set(None, "selection_cleared")

    def reset(self) -> None:
        """Drop the selection because the underlying graph changed."""
        self._set(None, "selection_reset")

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.entries()

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    def drain_change_count(self) -> int:
        """Broadcast changes since the last call."""
        changes, self._changes_since_drain = self._changes_since_drain, 0
        return changes

    def _set(self, entity_id: Optional[str], action: str) -> None:
        if entity_id == self._selected:
            return
        previous = self._selected
        self._selected = entity_id
        self._changes_since_drain += 1
        self._audit.record(
            action=action,
            entity_id=entity_id or previous,
            entity_type="entity",
            metadata=(("previous", previous or ""),),
        )
        self._listeners.notify(entity_id)


# =============================================================================
# FILTERS
# =============================================================================

def highlight_opacity(node_id: str, selected: Optional[str], dimmed_opacity: float) -> float:
    """Full opacity with no selection or for the selected node, dimmed otherwise."""
    if selected is None or node_id == selected:
        return 1.0
    return dimmed_opacity


def event_matches_entity(
    event: TimelineEventRecord,
    entity_id: str,
    name: Optional[str] = None,
    aliases: Sequence[str] = (),
) -> bool:
    if event.entities:
        return any(ref.entity_id == entity_id for ref in event.entities)

    fields = [text.lower() for text in (event.title, event.description) if text]
    needles = [n.lower() for n in (name, *aliases) if n and n.strip()]
    return any(needle in text for needle in needles for text in fields)


def filter_timeline_events(
    events: Iterable[TimelineEventRecord],
    entity_id: Optional[str],
    name: Optional[str] = None,
    aliases: Sequence[str] = (),
) -> List[TimelineEventRecord]:
    """Events for the selected entity, in input order. No selection keeps everything."""
    if entity_id is None:
        return list(events)
    return [e for e in events if event_matches_entity(e, entity_id, name, aliases)]
