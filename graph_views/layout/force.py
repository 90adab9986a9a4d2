"""
Force Layout Engine
===================

Physics-based node placement for the relationship network view.

FORCES (combined additively each step):
=======================================
- Link: spring toward `base_distance + radius(source) + radius(target)`
- Repulsion: inverse-distance, strength `-(base_charge + degree * charge_per_degree)`
- Collision: minimum separation `radius(a) + radius(b) + margin`, resolved by
  direct displacement so strong links cannot overwhelm it
- Centering: rigid shift of the node centroid toward the viewport centre

STATE OWNERSHIP:
================
Positions and velocities live in arrays owned by one SimulationHandle.
Forces are pure functions that return deltas; each step applies all deltas
at once and replaces the published arrays. Nothing outside the handle
writes positions, except the pin override used while dragging.

CANCELLATION:
=============
`ForceLayoutEngine.start` stops the previous handle before returning a new
one. A superseded handle never writes positions again.

Step cost is O(n^2) (naive pairwise repulsion and collision). Practical
graphs are tens to low hundreds of nodes.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple
import math
import numpy as np

from evidence_graph.contracts.base import Error, ErrorCode
from evidence_graph.contracts.events import AuditEventType, AuditLogEntry
from evidence_graph.model import GraphModel
from evidence_graph.observability import AuditRecorder

from ..state import LayoutPosition, SimulationStatus, SimulationEndReason
from ..state.subscription import ListenerRegistry, Subscription


GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


@dataclass
class ForceLayoutConfig:
    """Configuration for the force simulation."""
    base_link_distance: float = 50.0
    base_charge: float = 80.0
    charge_per_degree: float = 10.0
    collision_margin: float = 6.0
    collision_strength: float = 1.0
    center_strength: float = 1.0

    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 1.0 - 0.001 ** (1.0 / 300.0)
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3
    max_iterations: int = 1000

    min_distance: float = 1.0
    epsilon: float = 1e-6
    initial_spread: float = 10.0
    seed: Optional[int] = None


@dataclass(frozen=True)
class SimulationFrame:
    """Published after every step."""
    generation: int
    iteration: int
    alpha: float
    positions: Dict[str, LayoutPosition]


@dataclass(frozen=True)
class SimulationEnd:
    """Published when a handle stops stepping."""
    generation: int
    iteration: int
    reason: SimulationEndReason
    positions: Dict[str, LayoutPosition]
    error: Optional[Error] = None


# =============================================================================
# FORCE TERMS (pure: arrays in, deltas out)
# =============================================================================

def pair_offsets(
    positions: np.ndarray,
    min_distance: float,
    epsilon: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pairwise offsets `D[i, j] = p[j] - p[i]` and squared distances.

    Coincident pairs get a deterministic, antisymmetric direction at
    `min_distance`, so no distance is ever below epsilon.
    """
    n = positions.shape[0]
    offsets = positions[None, :, :] - positions[:, None, :]
    dist2 = np.einsum('ijk,ijk->ij', offsets, offsets)

    rows, cols = np.indices((n, n))
    coincident = (dist2 < epsilon * epsilon) & (rows != cols)
    if np.any(coincident):
        lo = np.minimum(rows, cols)
        hi = np.maximum(rows, cols)
        theta = GOLDEN_ANGLE * (lo * n + hi)
        sign = np.where(cols > rows, 1.0, -1.0)
        jitter = np.stack([np.cos(theta), np.sin(theta)], axis=-1) * (sign * min_distance)[..., None]
        offsets = np.where(coincident[..., None], jitter, offsets)
        dist2 = np.where(coincident, min_distance * min_distance, dist2)

    np.fill_diagonal(dist2, 0.0)
    return offsets, dist2


def link_velocity_delta(
    positions: np.ndarray,
    velocities: np.ndarray,
    sources: np.ndarray,
    targets: np.ndarray,
    distances: np.ndarray,
    strengths: np.ndarray,
    bias: np.ndarray,
    alpha: float,
    epsilon: float,
) -> np.ndarray:
    """Spring toward each link's target distance, stronger the further off."""
    delta = np.zeros_like(positions)
    if sources.size == 0:
        return delta
    predicted = positions + velocities
    vec = predicted[targets] - predicted[sources]
    length = np.maximum(np.hypot(vec[:, 0], vec[:, 1]), epsilon)
    k = (length - distances) / length * alpha * strengths
    vec = vec * k[:, None]
    np.add.at(delta, targets, -vec * bias[:, None])
    np.add.at(delta, sources, vec * (1.0 - bias)[:, None])
    return delta


def charge_velocity_delta(
    offsets: np.ndarray,
    dist2: np.ndarray,
    strengths: np.ndarray,
    alpha: float,
    min_distance: float,
) -> np.ndarray:
    """Inverse-distance many-body force; negative strengths repel."""
    n = offsets.shape[0]
    if n < 2:
        return np.zeros((n, 2))
    clamped = np.maximum(dist2, min_distance * min_distance)
    weights = strengths[None, :] * alpha / clamped
    np.fill_diagonal(weights, 0.0)
    return np.einsum('ij,ijk->ik', weights, offsets)


def collision_displacement(
    offsets: np.ndarray,
    dist2: np.ndarray,
    radii: np.ndarray,
    margin: float,
    strength: float,
    movable: np.ndarray,
    epsilon: float,
) -> np.ndarray:
    """Push overlapping pairs apart by their overlap, larger nodes moving less."""
    n = offsets.shape[0]
    if n < 2:
        return np.zeros((n, 2))
    distance = np.sqrt(np.maximum(dist2, epsilon * epsilon))
    required = radii[:, None] + radii[None, :] + margin
    overlap = np.maximum(required - distance, 0.0)
    np.fill_diagonal(overlap, 0.0)
    if not np.any(overlap > 0):
        return np.zeros((n, 2))

    r2 = radii * radii
    share = r2[None, :] / np.maximum(r2[:, None] + r2[None, :], epsilon)
    # A pinned partner pushes a movable node the whole way
    share = np.where(movable[None, :], share, 1.0)
    share = np.where(movable[:, None], share, 0.0)

    unit = offsets / distance[..., None]
    push = (overlap * share * strength)[..., None] * unit
    return -push.sum(axis=1)


def centering_displacement(
    positions: np.ndarray,
    center: Tuple[float, float],
    strength: float,
    movable: np.ndarray,
) -> np.ndarray:
    """Shift movable nodes so the centroid moves toward `center`."""
    delta = np.zeros_like(positions)
    if positions.shape[0] == 0 or not np.any(movable):
        return delta
    shift = (np.asarray(center) - positions.mean(axis=0)) * strength
    delta[movable] = shift
    return delta


# =============================================================================
# SIMULATION HANDLE
# =============================================================================

class SimulationHandle:
    """
    One running simulation over one GraphModel.

    Returned by `ForceLayoutEngine.start`. The owner steps it (one `tick`
    per frame, or `run`) and stops it. Listeners receive SimulationFrame
    after each step and SimulationEnd when stepping ends.
    """

    def __init__(
        self,
        engine: ForceLayoutEngine,
        generation: int,
        model: GraphModel,
        center: Tuple[float, float],
        config: ForceLayoutConfig,
        initial_positions: Optional[Mapping[str, Tuple[float, float]]] = None,
    ):
        self._engine = engine
        self._generation = generation
        self._config = config
        self._center = (float(center[0]), float(center[1]))

        self._node_ids: Tuple[str, ...] = model.node_ids
        self._index: Dict[str, int] = {nid: i for i, nid in enumerate(self._node_ids)}
        n = len(self._node_ids)

        degrees = np.array([model.degree.get(nid, 0) for nid in self._node_ids], dtype=float)
        self._radii = np.array([model.radius(nid) for nid in self._node_ids], dtype=float)
        self._charges = -(config.base_charge + degrees * config.charge_per_degree)

        links = [
            (self._index[e.source_node_id], self._index[e.target_node_id])
            for e in model.edges
            if e.source_node_id != e.target_node_id
        ]
        self._sources = np.array([s for s, _ in links], dtype=int)
        self._targets = np.array([t for _, t in links], dtype=int)
        counts = np.bincount(
            np.concatenate([self._sources, self._targets]), minlength=n
        ).astype(float) if links else np.zeros(n)
        if links:
            src_count = counts[self._sources]
            tgt_count = counts[self._targets]
            self._link_strengths = 1.0 / np.minimum(src_count, tgt_count)
            self._link_bias = src_count / (src_count + tgt_count)
            self._link_distances = (
                config.base_link_distance + self._radii[self._sources] + self._radii[self._targets]
            )
        else:
            self._link_strengths = np.zeros(0)
            self._link_bias = np.zeros(0)
            self._link_distances = np.zeros(0)

        self._positions = self._initial_positions(n, initial_positions)
        self._velocities = np.zeros((n, 2))
        self._pinned = np.zeros(n, dtype=bool)
        self._pin_positions = np.zeros((n, 2))

        self._alpha = config.alpha
        self._alpha_target = 0.0
        self._iteration = 0
        self._total_ticks = 0
        self._status = SimulationStatus.RUNNING
        self._end_reason: Optional[SimulationEndReason] = None

        self._tick_listeners: ListenerRegistry[SimulationFrame] = ListenerRegistry()
        self._end_listeners: ListenerRegistry[SimulationEnd] = ListenerRegistry()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def status(self) -> SimulationStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == SimulationStatus.RUNNING

    @property
    def end_reason(self) -> Optional[SimulationEndReason]:
        return self._end_reason

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @property
    def iteration(self) -> int:
        """Steps since the last (re)start."""
        return self._iteration

    @property
    def total_ticks(self) -> int:
        return self._total_ticks

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return self._node_ids

    def is_current(self) -> bool:
        return self._engine.active is self

    # =========================================================================
    # READ ACCESS (published snapshot)
    # =========================================================================

    def positions(self) -> Dict[str, LayoutPosition]:
        pos = self._positions
        return {
            nid: LayoutPosition(float(pos[i, 0]), float(pos[i, 1]))
            for i, nid in enumerate(self._node_ids)
        }

    def position(self, node_id: str) -> Optional[LayoutPosition]:
        i = self._index.get(node_id)
        if i is None:
            return None
        return LayoutPosition(float(self._positions[i, 0]), float(self._positions[i, 1]))

    def position_array(self) -> np.ndarray:
        """Read-only copy of the (n, 2) position buffer, in `node_ids` order."""
        copy = self._positions.copy()
        copy.setflags(write=False)
        return copy

    def radius(self, node_id: str) -> Optional[float]:
        i = self._index.get(node_id)
        return None if i is None else float(self._radii[i])

    def is_pinned(self, node_id: str) -> bool:
        i = self._index.get(node_id)
        return i is not None and bool(self._pinned[i])

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def on_tick(self, listener: Callable[[SimulationFrame], None]) -> Subscription:
        return self._tick_listeners.subscribe(listener)

    def on_end(self, listener: Callable[[SimulationEnd], None]) -> Subscription:
        return self._end_listeners.subscribe(listener)

    # =========================================================================
    # STEPPING
    # =========================================================================

    def tick(self) -> bool:
        """
        Advance one step.

        Returns True once the simulation is no longer running (ended,
        stopped, or superseded), False while it should keep stepping.
        """
        if self._status != SimulationStatus.RUNNING:
            return True
        if not self.is_current():
            self._finish(SimulationStatus.STOPPED, SimulationEndReason.SUPERSEDED)
            return True
        if not self._node_ids:
            self._finish(SimulationStatus.CONVERGED, SimulationEndReason.EMPTY_GRAPH)
            return True

        self._step()
        self._iteration += 1
        self._total_ticks += 1
        self._engine._record_tick()

        if self._tick_listeners:
            self._tick_listeners.notify(SimulationFrame(
                generation=self._generation,
                iteration=self._iteration,
                alpha=self._alpha,
                positions=self.positions(),
            ))

        if self._alpha < self._config.alpha_min and self._alpha_target < self._config.alpha_min:
            self._finish(SimulationStatus.CONVERGED, SimulationEndReason.ALPHA_DECAYED)
            return True
        if self._iteration >= self._config.max_iterations:
            self._finish(SimulationStatus.CONVERGED, SimulationEndReason.ITERATION_CAP)
            return True
        return False

    def run(self, max_ticks: Optional[int] = None) -> Optional[SimulationEndReason]:
        """Step until the simulation ends (or `max_ticks` steps have run)."""
        steps = 0
        while not self.tick():
            steps += 1
            if max_ticks is not None and steps >= max_ticks:
                break
        return self._end_reason

    def stop(self) -> None:
        """Stop stepping. A stopped handle never writes positions again."""
        if self._status == SimulationStatus.STOPPED:
            return
        self._finish(SimulationStatus.STOPPED, SimulationEndReason.STOPPED)

    def _supersede(self) -> None:
        if self._status != SimulationStatus.STOPPED:
            self._finish(SimulationStatus.STOPPED, SimulationEndReason.SUPERSEDED)

    def _step(self) -> None:
        cfg = self._config
        self._alpha += (self._alpha_target - self._alpha) * cfg.alpha_decay
        alpha = self._alpha

        positions = self._positions
        movable = ~self._pinned

        offsets, dist2 = pair_offsets(positions, cfg.min_distance, cfg.epsilon)
        dv = link_velocity_delta(
            positions, self._velocities, self._sources, self._targets,
            self._link_distances, self._link_strengths, self._link_bias,
            alpha, cfg.epsilon,
        )
        dv += charge_velocity_delta(offsets, dist2, self._charges, alpha, cfg.min_distance)

        velocities = (self._velocities + dv) * (1.0 - cfg.velocity_decay)
        proposed = positions + velocities
        proposed[self._pinned] = self._pin_positions[self._pinned]
        velocities[self._pinned] = 0.0

        offsets, dist2 = pair_offsets(proposed, cfg.min_distance, cfg.epsilon)
        dx = collision_displacement(
            offsets, dist2, self._radii, cfg.collision_margin,
            cfg.collision_strength, movable, cfg.epsilon,
        )
        dx += centering_displacement(proposed, self._center, cfg.center_strength, movable)

        # Publish atomically
        self._positions = proposed + dx
        self._velocities = velocities

    def _finish(self, status: SimulationStatus, reason: SimulationEndReason) -> None:
        self._status = status
        self._end_reason = reason
        self._engine._record_end(self, reason)
        self._end_listeners.notify(SimulationEnd(
            generation=self._generation,
            iteration=self._iteration,
            reason=reason,
            positions=self.positions(),
            error=self._cap_error() if reason == SimulationEndReason.ITERATION_CAP else None,
        ))

    def _cap_error(self) -> Error:
        return Error.create(
            ErrorCode.SIMULATION_CAP_REACHED,
            "Iteration cap reached before alpha decayed",
            generation=self._generation,
            iterations=self._iteration,
            alpha=f"{self._alpha:.6f}",
        )

    # =========================================================================
    # DRAG SUPPORT (pin override + re-energising)
    # =========================================================================

    def pin(self, node_id: str, x: float, y: float) -> bool:
        """Fix a node at (x, y). Written straight through when not stepping."""
        i = self._index.get(node_id)
        if i is None or self._status == SimulationStatus.STOPPED or not self.is_current():
            return False
        if not (math.isfinite(x) and math.isfinite(y)):
            return False
        self._pinned[i] = True
        self._pin_positions[i] = (x, y)
        if self._status != SimulationStatus.RUNNING:
            positions = self._positions.copy()
            positions[i] = (x, y)
            self._positions = positions
            self._velocities[i] = 0.0
        return True

    def unpin(self, node_id: str) -> bool:
        i = self._index.get(node_id)
        if i is None:
            return False
        self._pinned[i] = False
        return True

    def reheat(self, alpha_target: Optional[float] = None) -> bool:
        """
        Hold alpha toward a higher target and resume stepping if the
        simulation had settled. Either way a new episode starts, so the
        iteration cap counts from here. Stopped or superseded handles stay dead.
        """
        if self._status == SimulationStatus.STOPPED or not self.is_current():
            return False
        self._alpha_target = self._config.drag_alpha_target if alpha_target is None else alpha_target
        self._iteration = 0
        if self._status == SimulationStatus.CONVERGED and self._node_ids:
            self._status = SimulationStatus.RUNNING
            self._end_reason = None
            self._engine._record_restart(self)
        return True

    def cool(self) -> None:
        """Let alpha decay toward zero again."""
        self._alpha_target = 0.0

    # =========================================================================
    # INITIAL PLACEMENT
    # =========================================================================

    def _initial_positions(
        self,
        n: int,
        provided: Optional[Mapping[str, Tuple[float, float]]],
    ) -> np.ndarray:
        rng = np.random.default_rng(self._config.seed)
        spread = self._config.initial_spread * math.sqrt(max(n, 1))
        radius = spread * np.sqrt(rng.random(n))
        theta = 2.0 * math.pi * rng.random(n)
        positions = np.empty((n, 2))
        positions[:, 0] = self._center[0] + radius * np.cos(theta)
        positions[:, 1] = self._center[1] + radius * np.sin(theta)
        if provided:
            for nid, xy in provided.items():
                i = self._index.get(nid)
                if i is None:
                    continue
                x, y = float(xy[0]), float(xy[1])
                if math.isfinite(x) and math.isfinite(y):
                    positions[i] = (x, y)
        return positions


# =============================================================================
# ENGINE
# =============================================================================

class ForceLayoutEngine:
    """
    Starts simulations and guarantees at most one is live.

    `start` stops and discards the previous handle before returning the new
    one; no state carries over across structural changes.
    """

    def __init__(self, config: Optional[ForceLayoutConfig] = None):
        self._config = config or ForceLayoutConfig()
        self._active: Optional[SimulationHandle] = None
        self._generation = 0
        self._audit = AuditRecorder('layout', AuditEventType.LAYOUT)
        self._ticks_since_drain = 0

    @property
    def config(self) -> ForceLayoutConfig:
        return self._config

    @property
    def active(self) -> Optional[SimulationHandle]:
        return self._active

    def start(
        self,
        model: GraphModel,
        width: float,
        height: float,
        initial_positions: Optional[Mapping[str, Tuple[float, float]]] = None,
    ) -> SimulationHandle:
        """Stop the current simulation and start a new one centred in the viewport."""
        previous = self._active
        self._generation += 1
        handle = SimulationHandle(
            engine=self,
            generation=self._generation,
            model=model,
            center=(width / 2.0, height / 2.0),
            config=self._config,
            initial_positions=initial_positions,
        )
        self._active = handle
        if previous is not None:
            previous._supersede()

        self._audit.record(
            action="simulation_started",
            entity_id=str(self._generation),
            entity_type="simulation",
            metadata=(
                ("nodes", str(len(model.nodes))),
                ("edges", str(len(model.edges))),
            ),
        )
        return handle

    def stop(self) -> None:
        """Stop the live simulation, if any."""
        if self._active is not None:
            self._active.stop()

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.entries()

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    def drain_tick_count(self) -> int:
        """Ticks executed since the last call."""
        ticks, self._ticks_since_drain = self._ticks_since_drain, 0
        return ticks

    # Callbacks from handles

    def _record_tick(self) -> None:
        self._ticks_since_drain += 1

    def _record_end(self, handle: SimulationHandle, reason: SimulationEndReason) -> None:
        event_type = AuditEventType.ERROR if reason == SimulationEndReason.ITERATION_CAP else None
        self._audit.record(
            action="simulation_ended",
            entity_id=str(handle.generation),
            entity_type="simulation",
            metadata=(
                ("reason", reason.value),
                ("iterations", str(handle.iteration)),
                ("alpha", f"{handle.alpha:.6f}"),
            ),
            event_type=event_type,
        )

    def _record_restart(self, handle: SimulationHandle) -> None:
        self._audit.record(
            action="simulation_reheated",
            entity_id=str(handle.generation),
            entity_type="simulation",
            metadata=(("alpha_target", f"{handle.alpha_target:.3f}"),),
        )
