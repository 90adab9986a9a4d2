"""
Collaborator Records

Raw records as they arrive from the upstream extraction and CRUD collaborators.

PARSING CONTRACT:
=================
- `from_mapping` NEVER raises
- A record without a usable id parses to None (the caller drops it)
- Every other missing field falls back to a safe value
- Both API field names (`entity_type`, `source_node`) and export field names
  (`category`, `sourceId`) are accepted
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _identifier(value: Any) -> Optional[str]:
    text = _text(value)
    if text is None or not text.strip():
        return None
    return text


def _text_tuple(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple, set, frozenset)):
        return ()
    return tuple(v for v in value if isinstance(v, str) and v)


def _properties(value: Any) -> Tuple[Tuple[str, Any], ...]:
    if not isinstance(value, Mapping):
        return ()
    return tuple((str(k), v) for k, v in value.items())


# =============================================================================
# ENTITY / RELATIONSHIP RECORDS (entity API variant)
# =============================================================================

@dataclass(frozen=True)
class EntityRecord:
    """An extracted entity: `{id, name, category, aliases?}`."""
    entity_id: str
    name: str
    category: Optional[str]
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def from_mapping(raw: Any) -> Optional[EntityRecord]:
        if not isinstance(raw, Mapping):
            return None
        entity_id = _identifier(_first(raw, 'id', 'entity_id'))
        if entity_id is None:
            return None
        return EntityRecord(
            entity_id=entity_id,
            name=_text(_first(raw, 'name', 'label', 'display_name')) or entity_id,
            category=_text(_first(raw, 'category', 'entity_type', 'type')),
            aliases=_text_tuple(raw.get('aliases')),
        )


@dataclass(frozen=True)
class RelationshipRecord:
    """A typed relationship: `{id, category, entityAId, entityBId, description?}`."""
    relationship_id: str
    category: Optional[str]
    entity_a_id: Optional[str]
    entity_b_id: Optional[str]
    description: Optional[str] = None

    @staticmethod
    def from_mapping(raw: Any) -> Optional[RelationshipRecord]:
        if not isinstance(raw, Mapping):
            return None
        relationship_id = _identifier(_first(raw, 'id', 'relationship_id'))
        if relationship_id is None:
            return None
        return RelationshipRecord(
            relationship_id=relationship_id,
            category=_text(_first(raw, 'category', 'relationship_type', 'type')),
            entity_a_id=_identifier(_first(raw, 'entity_a_id', 'entityAId', 'source_id')),
            entity_b_id=_identifier(_first(raw, 'entity_b_id', 'entityBId', 'target_id')),
            description=_text(raw.get('description')),
        )


# =============================================================================
# NODE / EDGE RECORDS (project-graph export variant)
# =============================================================================

@dataclass(frozen=True)
class NodeRecord:
    """A graph export node: `{id, category, label, properties}`."""
    node_id: str
    category: Optional[str]
    label: str
    properties: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def property_map(self) -> dict:
        return dict(self.properties)

    @staticmethod
    def from_mapping(raw: Any) -> Optional[NodeRecord]:
        if not isinstance(raw, Mapping):
            return None
        node_id = _identifier(_first(raw, 'id', 'node_id'))
        if node_id is None:
            return None
        return NodeRecord(
            node_id=node_id,
            category=_text(_first(raw, 'category', 'node_type', 'type')),
            label=_text(_first(raw, 'label', 'name')) or node_id,
            properties=_properties(raw.get('properties')),
        )


@dataclass(frozen=True)
class EdgeRecord:
    """A graph export edge: `{id, category, sourceId, targetId}`."""
    edge_id: str
    category: Optional[str]
    source_id: Optional[str]
    target_id: Optional[str]
    properties: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @staticmethod
    def from_mapping(raw: Any) -> Optional[EdgeRecord]:
        if not isinstance(raw, Mapping):
            return None
        edge_id = _identifier(_first(raw, 'id', 'edge_id'))
        if edge_id is None:
            return None
        return EdgeRecord(
            edge_id=edge_id,
            category=_text(_first(raw, 'category', 'edge_type', 'type')),
            source_id=_identifier(_first(raw, 'source_id', 'sourceId', 'source_node', 'source')),
            target_id=_identifier(_first(raw, 'target_id', 'targetId', 'target_node', 'target')),
            properties=_properties(raw.get('properties')),
        )


@dataclass(frozen=True)
class DocumentRecord:
    """A source document, used only for colour-coding and badges."""
    document_id: str
    title: str

    @staticmethod
    def from_mapping(raw: Any) -> Optional[DocumentRecord]:
        if not isinstance(raw, Mapping):
            return None
        document_id = _identifier(_first(raw, 'id', 'document_id'))
        if document_id is None:
            return None
        return DocumentRecord(
            document_id=document_id,
            title=_text(raw.get('title')) or document_id,
        )


# =============================================================================
# TIMELINE EVENT RECORDS (chronological timeline collaborator)
# =============================================================================

@dataclass(frozen=True)
class TimelineEntityRef:
    """An entity explicitly attached to a timeline event."""
    entity_id: str
    name: str
    category: Optional[str] = None
    role: Optional[str] = None


@dataclass(frozen=True)
class TimelineEventRecord:
    """A timeline event with its explicit entity associations."""
    event_id: str
    title: str
    description: Optional[str] = None
    date_text: Optional[str] = None
    document_id: Optional[str] = None
    entities: Tuple[TimelineEntityRef, ...] = field(default_factory=tuple)

    @staticmethod
    def from_mapping(raw: Any) -> Optional[TimelineEventRecord]:
        if not isinstance(raw, Mapping):
            return None
        event_id = _identifier(raw.get('id'))
        if event_id is None:
            return None
        entities = []
        raw_entities = raw.get('entities')
        if isinstance(raw_entities, (list, tuple)):
            for item in raw_entities:
                if not isinstance(item, Mapping):
                    continue
                entity_id = _identifier(item.get('id'))
                if entity_id is None:
                    continue
                entities.append(TimelineEntityRef(
                    entity_id=entity_id,
                    name=_text(item.get('name')) or entity_id,
                    category=_text(_first(item, 'entity_type', 'category')),
                    role=_text(item.get('role')),
                ))
        return TimelineEventRecord(
            event_id=event_id,
            title=_text(raw.get('title')) or '',
            description=_text(raw.get('description')),
            date_text=_text(raw.get('date_text')),
            document_id=_identifier(raw.get('document_id')),
            entities=tuple(entities),
        )
