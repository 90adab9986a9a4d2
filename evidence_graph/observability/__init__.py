"""
Observability & Audit Layer

RESPONSIBILITY: Logging and metrics for the model, layout and view layers
ALLOWED INPUTS: Audit entries and metric points copied from other layers
OUTPUTS: Per-layer logs, metric series, audit reports

WHAT THIS LAYER MUST NOT DO:
============================
- Modify layout, selection or model state
- Filter or interpret events (only record them)
- Block or delay a simulation step

BOUNDARY ENFORCEMENT:
=====================
- Receives COPIES of entries (frozen records)
- Provides read-only access to logs and metrics
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from enum import Enum

from ..contracts.base import Timestamp, generate_entry_id
from ..contracts.events import AuditEventType, AuditLogEntry, MetricPoint


LAYERS = ('model', 'layout', 'swimlane', 'selection', 'interaction', 'session')


# =============================================================================
# AUDIT RECORDER (owned by each engine)
# =============================================================================

class AuditRecorder:
    """
    Append-only audit log owned by a single engine.

    Engines record into their own recorder; the session copies entries
    into the ObservabilityEngine after each operation.
    """

    def __init__(self, layer: str, event_type: AuditEventType):
        self._layer = layer
        self._event_type = event_type
        self._entries: List[AuditLogEntry] = []
        self._sequence = 0

    def record(
        self,
        action: str,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        metadata: Tuple[Tuple[str, str], ...] = (),
        event_type: Optional[AuditEventType] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            entry_id=generate_entry_id(self._layer, action, self._sequence),
            event_type=event_type or self._event_type,
            timestamp=Timestamp.now(),
            layer=self._layer,
            action=action,
            entity_id=entity_id,
            entity_type=entity_type,
            metadata=tuple((k, str(v)) for k, v in metadata),
        )
        self._entries.append(entry)
        self._sequence += 1
        return entry

    def entries(self) -> List[AuditLogEntry]:
        return list(self._entries)

    def drain(self) -> List[AuditLogEntry]:
        """Return and forget all entries recorded so far."""
        drained, self._entries = self._entries, []
        return drained


# =============================================================================
# LOG COLLECTORS (One per layer)
# =============================================================================

class LogCollector:
    """
    Base log collector.

    Each layer has its own collector that receives copies of entries.
    Collectors are append-only - no modification of collected data.
    """

    def __init__(self, layer_name: str, max_entries: int = 10000):
        self._layer_name = layer_name
        self._max_entries = max_entries
        self._entries: List[AuditLogEntry] = []

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only, oldest dropped past the cap)."""
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            del self._entries[:len(self._entries) - self._max_entries]

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None,
        action: Optional[str] = None,
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = self._entries
        if event_type:
            entries = [e for e in entries if e.event_type == event_type]
        if action:
            entries = [e for e in entries if e.action == action]
        return list(entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Collect and aggregate metrics from all layers.

    Metrics are append-only series of data points.
    """

    def __init__(self):
        self._metrics: Dict[str, List[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        defaults = [
            MetricDefinition(
                name="edges_dropped_total",
                metric_type=MetricType.COUNTER,
                description="Edges dropped during model construction (dangling endpoints)"
            ),
            MetricDefinition(
                name="simulation_ticks_total",
                metric_type=MetricType.COUNTER,
                description="Force simulation steps executed"
            ),
            MetricDefinition(
                name="simulation_converged_total",
                metric_type=MetricType.COUNTER,
                description="Simulations that ended by alpha decay"
            ),
            MetricDefinition(
                name="simulation_cap_reached_total",
                metric_type=MetricType.COUNTER,
                description="Simulations forcibly stopped at the iteration cap"
            ),
            MetricDefinition(
                name="viewport_fit_skipped_total",
                metric_type=MetricType.COUNTER,
                description="Fits skipped on a degenerate bounding box"
            ),
            MetricDefinition(
                name="swimlane_fallback_lane_total",
                metric_type=MetricType.COUNTER,
                description="Swimlane layouts that synthesised the fallback lane"
            ),
            MetricDefinition(
                name="selection_changes_total",
                metric_type=MetricType.COUNTER,
                description="Selection changes broadcast to listeners"
            ),
            MetricDefinition(
                name="graph_node_count",
                metric_type=MetricType.GAUGE,
                description="Nodes in the most recently built model"
            ),
        ]
        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        self._definitions[definition.name] = definition
        if definition.name not in self._metrics:
            self._metrics[definition.name] = []

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        if metric_name not in self._metrics:
            self._metrics[metric_name] = []

        label_tuple = tuple(sorted(labels.items())) if labels else ()
        self._metrics[metric_name].append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=label_tuple
        ))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def total(self, metric_name: str) -> float:
        """Sum of all recorded values (meaningful for counters)."""
        return sum(p.value for p in self._metrics.get(metric_name, []))


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_metrics: bool = True
    max_entries_per_layer: int = 10000


class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Receives copies of all entries
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._collectors: Dict[str, LogCollector] = {
            name: LogCollector(name, self._config.max_entries_per_layer)
            for name in LAYERS
        }
        self._metrics = MetricsCollector() if self._config.enable_metrics else None

    def collect_audit(self, entry: AuditLogEntry):
        """Collect an audit log entry from any layer."""
        collector = self._collectors.get(entry.layer)
        if collector is None:
            collector = LogCollector(entry.layer, self._config.max_entries_per_layer)
            self._collectors[entry.layer] = collector
        collector.collect(entry)

    def collect_from(self, recorder: AuditRecorder):
        """Move everything a recorder holds into the collectors."""
        for entry in recorder.drain():
            self.collect_audit(entry)

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Collect a metric data point."""
        if self._metrics:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(self, layers: Optional[List[str]] = None) -> List[AuditLogEntry]:
        """Get unified log from all or specified layers, oldest first."""
        target_layers = layers or list(self._collectors.keys())
        all_entries = []
        for layer_name in target_layers:
            collector = self._collectors.get(layer_name)
            if collector:
                all_entries.extend(collector.get_entries())
        all_entries.sort(key=lambda e: e.timestamp.value)
        return all_entries

    def get_metrics(self) -> Optional[MetricsCollector]:
        """Get metrics collector (read-only access)."""
        return self._metrics

    def generate_audit_report(self) -> Dict:
        """Summarise collected entries by layer and event type."""
        entries = self.get_unified_log()
        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1
        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'generated_at': Timestamp.now().to_iso()
        }
