"""
Base Contracts and Shared Types

These are the foundational types used across the data and view sides.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import hashlib


# =============================================================================
# ERROR STATES (Explicit, never raised past a layer boundary)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for local recovery.
    Every degraded state is enumerated; none propagate as exceptions.
    """
    # Model construction
    DANGLING_EDGE = auto()
    MALFORMED_RECORD = auto()
    DUPLICATE_NODE = auto()
    EMPTY_GRAPH = auto()

    # Layout
    DEGENERATE_BOUNDS = auto()
    SIMULATION_CAP_REACHED = auto()
    SIMULATION_SUPERSEDED = auto()

    # Interaction
    UNKNOWN_NODE = auto()
    UNKNOWN_EDGE = auto()
    NON_FINITE_INPUT = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: str) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple((k, str(v)) for k, v in sorted(context.items())),
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object = None) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# TEMPORAL TYPES
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


# =============================================================================
# IDENTITY HELPERS
# =============================================================================

def generate_entry_id(layer: str, action: str, sequence: int) -> str:
    """Deterministic audit entry id from layer, action and sequence."""
    seed = f"{layer}_{action}|{sequence}"
    return f"audit_{hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]}"
