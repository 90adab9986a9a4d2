"""
Contracts Module

This module defines the explicit data types that form the contracts between
the graph model and the views. All inter-layer communication MUST use these
contracts. No view may import implementation details from the model layer.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Degraded states are explicit Error values, never exceptions
3. Loosely-typed property bags are parsed into named optional fields
4. All timestamps use UTC and are never mutated
"""

from .base import Error, ErrorCode, Result, Timestamp
from .records import (
    EntityRecord, RelationshipRecord, NodeRecord, EdgeRecord,
    DocumentRecord, TimelineEntityRef, TimelineEventRecord,
)
from .graph import Node, Edge, EventDetails, DEFAULT_CATEGORY, EVENT_CATEGORY
from .events import AuditEventType, AuditLogEntry, MetricPoint

__all__ = [
    'Error', 'ErrorCode', 'Result', 'Timestamp',
    'EntityRecord', 'RelationshipRecord', 'NodeRecord', 'EdgeRecord',
    'DocumentRecord', 'TimelineEntityRef', 'TimelineEventRecord',
    'Node', 'Edge', 'EventDetails', 'DEFAULT_CATEGORY', 'EVENT_CATEGORY',
    'AuditEventType', 'AuditLogEntry', 'MetricPoint',
]
