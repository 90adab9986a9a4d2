"""
Interaction Contracts & Controller

Responsibility:
Translate rendering-surface input into viewport, selection and drag effects.
The rendering layer calls the discrete `InteractionEvents` methods; it never
touches positions, selection or the transform directly.

EFFECTS:
========
- Pan / zoom change ONLY the viewport transform, never node positions
- Zoom is clamped to [min_zoom, max_zoom] and keeps the point under the
  pointer fixed on screen
- Drag pins the node to the pointer and re-energises the simulation;
  release unpins and lets it settle
- Node click toggles selection; background click clears it
- Hover produces a transient Tooltip and carries no state forward

Unknown node or edge ids are ignored and reported as a failed Result.
Non-finite pointer input, or input that would overflow the transform, is
ignored: the transform stays as it was.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional
import math

from evidence_graph.contracts.base import Error, ErrorCode, Result
from evidence_graph.contracts.events import AuditEventType, AuditLogEntry
from evidence_graph.model import GraphModel
from evidence_graph.observability import AuditRecorder

from .layout.force import SimulationHandle
from .selection import SelectionCoordinator
from .state import ViewportTransform, Tooltip, TooltipTarget
from .state.subscription import ListenerRegistry, Subscription


@dataclass
class InteractionConfig:
    """Configuration for viewport interaction."""
    min_zoom: float = 0.15
    max_zoom: float = 5.0
    wheel_sensitivity: float = 0.002
    dimmed_opacity: float = 0.35


# =============================================================================
# INTERACTION INTERFACE (invoked by the rendering layer)
# =============================================================================

class InteractionEvents(ABC):
    """Discrete input events. Pointer coordinates are in screen space."""

    @abstractmethod
    def on_node_click(self, node_id: str) -> Result:
        ...

    @abstractmethod
    def on_background_click(self) -> Result:
        ...

    @abstractmethod
    def on_node_drag_start(self, node_id: str, pointer_x: float, pointer_y: float) -> Result:
        ...

    @abstractmethod
    def on_node_drag_move(self, node_id: str, pointer_x: float, pointer_y: float) -> Result:
        ...

    @abstractmethod
    def on_node_drag_end(self, node_id: str) -> Result:
        ...

    @abstractmethod
    def on_node_hover(self, node_id: Optional[str]) -> Result:
        ...

    @abstractmethod
    def on_edge_hover(self, edge_id: Optional[str]) -> Result:
        ...


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def all_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def relationship_count_text(degree: int) -> str:
    return f"{degree} relationship{'' if degree == 1 else 's'}"


class InteractionController(InteractionEvents):
    """
    Default implementation of InteractionEvents.

    Bound to the current model and simulation handle by the owning session;
    `bind` is called again whenever the data changes.
    """

    def __init__(
        self,
        selection: SelectionCoordinator,
        config: Optional[InteractionConfig] = None,
    ):
        self._config = config or InteractionConfig()
        self._selection = selection
        self._model = GraphModel.empty()
        self._handle: Optional[SimulationHandle] = None
        self._transform = ViewportTransform.identity()
        self._dragging: Optional[str] = None
        self._tooltip: Optional[Tooltip] = None
        self._transform_listeners: ListenerRegistry[ViewportTransform] = ListenerRegistry()
        self._audit = AuditRecorder('interaction', AuditEventType.INTERACTION)

    @property
    def config(self) -> InteractionConfig:
        return self._config

    @property
    def transform(self) -> ViewportTransform:
        return self._transform

    @property
    def tooltip(self) -> Optional[Tooltip]:
        return self._tooltip

    @property
    def dragging(self) -> Optional[str]:
        return self._dragging

    def bind(self, model: GraphModel, handle: Optional[SimulationHandle]) -> None:
        """Point the controller at a new model and its simulation."""
        self._model = model
        self._handle = handle
        self._dragging = None
        self._tooltip = None

    def on_transform_change(self, listener: Callable[[ViewportTransform], None]) -> Subscription:
        return self._transform_listeners.subscribe(listener)

    def set_transform(self, transform: ViewportTransform) -> None:
        """Replace the transform (used when fitting)."""
        self._transform = transform
        self._transform_listeners.notify(transform)

    # =========================================================================
    # VIEWPORT
    # =========================================================================

    def on_pan(self, dx: float, dy: float) -> ViewportTransform:
        current = self._transform
        if not all_finite(dx, dy, current.translate_x + dx, current.translate_y + dy):
            return self._ignored("pan", dx=dx, dy=dy)
        self.set_transform(current.translated(dx, dy))
        return self._transform

    def on_zoom(self, factor: float, pointer_x: float, pointer_y: float) -> ViewportTransform:
        """Scale by `factor` about the pointer, clamped to the zoom extent."""
        if not factor > 0:
            return self._transform
        current = self._transform
        scale = clamp(current.scale * factor, self._config.min_zoom, self._config.max_zoom)
        ratio = scale / current.scale
        translate_x = pointer_x - (pointer_x - current.translate_x) * ratio
        translate_y = pointer_y - (pointer_y - current.translate_y) * ratio
        if not all_finite(pointer_x, pointer_y, translate_x, translate_y):
            return self._ignored("zoom", pointer_x=pointer_x, pointer_y=pointer_y)
        self.set_transform(ViewportTransform(translate_x, translate_y, scale))
        return self._transform

    def on_wheel(self, delta_y: float, pointer_x: float, pointer_y: float) -> ViewportTransform:
        if not math.isfinite(delta_y):
            return self._ignored("wheel", delta_y=delta_y)
        # Beyond 2**64 the zoom clamp decides anyway
        exponent = clamp(-delta_y * self._config.wheel_sensitivity, -64.0, 64.0)
        return self.on_zoom(2 ** exponent, pointer_x, pointer_y)

    # =========================================================================
    # SELECTION
    # =========================================================================

    def on_node_click(self, node_id: str) -> Result:
        if self._model.node(node_id) is None:
            return self._unknown_node(node_id, "click")
        return Result.success(self._selection.select(node_id))

    def on_background_click(self) -> Result:
        self._selection.clear()
        return Result.success(None)

    # =========================================================================
    # DRAG
    # =========================================================================

    def on_node_drag_start(self, node_id: str, pointer_x: float, pointer_y: float) -> Result:
        if self._model.node(node_id) is None:
            return self._unknown_node(node_id, "drag_start")
        x, y = self._transform.invert(pointer_x, pointer_y)
        if not all_finite(pointer_x, pointer_y, x, y):
            return self._non_finite_pointer(node_id, "drag_start")
        handle = self._live_handle()
        if handle is None:
            return self._superseded(node_id)
        if not handle.pin(node_id, x, y):
            return self._superseded(node_id)
        handle.reheat()
        self._dragging = node_id
        self._audit.record(action="drag_started", entity_id=node_id, entity_type="node")
        return Result.success(node_id)

    def on_node_drag_move(self, node_id: str, pointer_x: float, pointer_y: float) -> Result:
        if self._model.node(node_id) is None:
            return self._unknown_node(node_id, "drag_move")
        x, y = self._transform.invert(pointer_x, pointer_y)
        if not all_finite(pointer_x, pointer_y, x, y):
            return self._non_finite_pointer(node_id, "drag_move")
        handle = self._live_handle()
        if handle is None or self._dragging != node_id:
            return self._superseded(node_id)
        if not handle.pin(node_id, x, y):
            return self._superseded(node_id)
        if not handle.is_running:
            # Settled mid-drag: keep re-settling around the pinned node
            handle.reheat()
        return Result.success(node_id)

    def on_node_drag_end(self, node_id: str) -> Result:
        if self._model.node(node_id) is None:
            return self._unknown_node(node_id, "drag_end")
        handle = self._handle
        if handle is not None:
            handle.unpin(node_id)
            handle.cool()
            if self._dragging == node_id and not handle.is_running:
                # Settled while held: let it settle again without the pin
                handle.reheat(0.0)
        self._dragging = None
        self._audit.record(action="drag_ended", entity_id=node_id, entity_type="node")
        return Result.success(node_id)

    # =========================================================================
    # HOVER
    # =========================================================================

    def on_node_hover(self, node_id: Optional[str]) -> Result:
        if node_id is None:
            self._tooltip = None
            return Result.success(None)
        node = self._model.node(node_id)
        if node is None:
            self._tooltip = None
            return self._unknown_node(node_id, "hover")
        self._tooltip = Tooltip(
            target=TooltipTarget.NODE,
            target_id=node.node_id,
            title=node.display_name,
            subtitle=f"{node.category} · {relationship_count_text(node.degree)}",
            detail=", ".join(node.aliases) if node.aliases else None,
        )
        return Result.success(self._tooltip)

    def on_edge_hover(self, edge_id: Optional[str]) -> Result:
        if edge_id is None:
            self._tooltip = None
            return Result.success(None)
        edge = self._model.edge(edge_id)
        if edge is None:
            self._tooltip = None
            error = Error.create(ErrorCode.UNKNOWN_EDGE, "Edge not in model", edge_id=edge_id)
            self._audit.record(action="unknown_edge", entity_id=edge_id, entity_type="edge",
                               event_type=AuditEventType.ERROR)
            return Result.failure(error)
        source = self._model.node(edge.source_node_id)
        target = self._model.node(edge.target_node_id)
        source_name = source.display_name if source else edge.source_node_id
        target_name = target.display_name if target else edge.target_node_id
        self._tooltip = Tooltip(
            target=TooltipTarget.EDGE,
            target_id=edge.edge_id,
            title=f"{source_name} {edge.category.replace('_', ' ')} {target_name}",
            subtitle=edge.category,
            detail=edge.description,
        )
        return Result.success(self._tooltip)

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.entries()

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _live_handle(self) -> Optional[SimulationHandle]:
        handle = self._handle
        if handle is None or not handle.is_current():
            return None
        return handle

    def _unknown_node(self, node_id: str, action: str) -> Result:
        self._audit.record(
            action=f"unknown_node_{action}",
            entity_id=node_id,
            entity_type="node",
            event_type=AuditEventType.ERROR,
        )
        return Result.failure(Error.create(
            ErrorCode.UNKNOWN_NODE, "Node not in model", node_id=node_id, action=action
        ))

    def _ignored(self, action: str, **values: float) -> ViewportTransform:
        self._audit.record(
            action=f"non_finite_{action}",
            entity_id="viewport",
            entity_type="transform",
            metadata=tuple((k, str(v)) for k, v in sorted(values.items())),
            event_type=AuditEventType.ERROR,
        )
        return self._transform

    def _non_finite_pointer(self, node_id: str, action: str) -> Result:
        self._audit.record(
            action=f"non_finite_{action}",
            entity_id=node_id,
            entity_type="node",
            event_type=AuditEventType.ERROR,
        )
        return Result.failure(Error.create(
            ErrorCode.NON_FINITE_INPUT, "Pointer coordinates must be finite", node_id=node_id, action=action
        ))

    def _superseded(self, node_id: str) -> Result:
        return Result.failure(Error.create(
            ErrorCode.SIMULATION_SUPERSEDED, "No live simulation for this node", node_id=node_id
        ))
