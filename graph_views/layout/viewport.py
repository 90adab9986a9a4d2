"""
Viewport Fitter

Responsibility:
Frame every positioned node inside the viewport with padding, preserving
aspect ratio and never zooming past `max_zoom`.

    scale = min((W - 2p) / box_w, (H - 2p) / box_h, max_zoom)
    translate centres the box midpoint on the viewport midpoint

A degenerate box (zero width or height, e.g. a single node) or a viewport
too small for the padding cannot produce a finite positive scale; the fit
is skipped and the previous transform is returned unchanged.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple
import math

from evidence_graph.contracts.base import Error, ErrorCode
from evidence_graph.contracts.events import AuditEventType, AuditLogEntry
from evidence_graph.observability import AuditRecorder

from ..state import LayoutPosition, ViewportTransform


@dataclass
class ViewportFitConfig:
    """Configuration for viewport fitting."""
    padding: float = 40.0
    max_zoom: float = 1.2


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    @staticmethod
    def of(points: Iterable[Tuple[float, float]]) -> Optional[BoundingBox]:
        xs: List[float] = []
        ys: List[float] = []
        for x, y in points:
            xs.append(x)
            ys.append(y)
        if not xs:
            return None
        return BoundingBox(min(xs), min(ys), max(xs), max(ys))


@dataclass(frozen=True)
class FitOutcome:
    """
    Result of a fit attempt.

    `transform` is always usable: the fitted transform when `applied`,
    otherwise the unchanged previous transform.
    """
    transform: ViewportTransform
    applied: bool
    error: Optional[Error] = None


class ViewportFitter:
    """Computes zoom-to-fit transforms."""

    def __init__(self, config: Optional[ViewportFitConfig] = None):
        self._config = config or ViewportFitConfig()
        self._audit = AuditRecorder('layout', AuditEventType.LAYOUT)

    @property
    def config(self) -> ViewportFitConfig:
        return self._config

    def fit(
        self,
        positions: Mapping[str, LayoutPosition],
        viewport_width: float,
        viewport_height: float,
        previous: Optional[ViewportTransform] = None,
    ) -> FitOutcome:
        previous = previous or ViewportTransform.identity()
        padding = self._config.padding

        box = BoundingBox.of((p.x, p.y) for p in positions.values())
        if box is None or box.width <= 0 or box.height <= 0:
            return self._skip(previous, "Bounding box has zero width or height",
                              nodes=str(len(positions)))

        available_w = viewport_width - 2 * padding
        available_h = viewport_height - 2 * padding
        scale = min(available_w / box.width, available_h / box.height, self._config.max_zoom)
        if not math.isfinite(scale) or scale <= 0:
            return self._skip(previous, "Viewport too small to fit with padding",
                              width=str(viewport_width), height=str(viewport_height))

        cx, cy = box.center
        transform = ViewportTransform(
            translate_x=viewport_width / 2.0 - scale * cx,
            translate_y=viewport_height / 2.0 - scale * cy,
            scale=scale,
        )
        self._audit.record(
            action="viewport_fitted",
            metadata=(("scale", f"{scale:.4f}"), ("nodes", str(len(positions)))),
        )
        return FitOutcome(transform=transform, applied=True)

    def _skip(self, previous: ViewportTransform, message: str, **context: str) -> FitOutcome:
        error = Error.create(ErrorCode.DEGENERATE_BOUNDS, message, **context)
        self._audit.record(action="viewport_fit_skipped", metadata=(("reason", message),))
        return FitOutcome(transform=previous, applied=False, error=error)

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.entries()

    @property
    def audit(self) -> AuditRecorder:
        return self._audit
