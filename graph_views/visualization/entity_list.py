"""
Entity List Contracts

Responsibility:
Searchable, category-grouped entity list that mirrors the shared selection.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..state import AvailabilityState


CATEGORY_ORDER = ('person', 'place', 'organization', 'object', 'amount')


@dataclass(frozen=True)
class EntityListItem:
    entity_id: str
    name: str
    category: str
    aliases: Tuple[str, ...]
    relationship_count: int
    is_selected: bool


@dataclass(frozen=True)
class EntityGroup:
    category: str
    items: Tuple[EntityListItem, ...]


@dataclass(frozen=True)
class EntityListView:
    """Groups in display order. `can_clear_filter` is set while a selection exists."""
    view_id: str
    query: str
    groups: Tuple[EntityGroup, ...]
    total: int
    selected_id: Optional[str]
    can_clear_filter: bool
    availability: AvailabilityState
