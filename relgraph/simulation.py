"""Force-directed layout simulation.

Positions are advanced one tick at a time by four additive forces:

- Link: pulls linked nodes toward a fixed rest length
- Charge: inverse-distance repulsion between every pair of nodes
- Center: shifts the arrangement so its mean sits at the viewport center
- Collision: pushes apart nodes closer than twice the collision radius

The energy ``alpha`` scales every force except centering and decays
geometrically toward ``alpha_target``. Pinned nodes keep their pinned
position while still acting on the others.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from relgraph.config import SimulationConfig

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from relgraph.models import EntityId

logger = logging.getLogger(__name__)

# Golden-angle spiral used for the initial placement of new nodes
INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


class SimulationState(str, Enum):
    """Lifecycle of a simulation.

    - idle: Not ticking (never started, converged or stopped)
    - running: Forces applied at working energy
    - settling: Energy decaying toward zero after convergence began
    """

    IDLE = "idle"
    RUNNING = "running"
    SETTLING = "settling"


class Simulation:
    """Force-directed simulation over one set of nodes and links.

    A simulation is bound to the node and link set it was created with. A new
    node set gets a new simulation; the old one is disposed.
    """

    def __init__(
        self,
        node_ids: Sequence[EntityId],
        links: Sequence[tuple[EntityId, EntityId]],
        config: SimulationConfig | None = None,
        center: tuple[float, float] = (400.0, 300.0),
        initial_positions: Mapping[EntityId, tuple[float, float]] | None = None,
    ) -> None:
        """Initialize the simulation.

        Args:
            node_ids: IDs of the simulated nodes
            links: (source_id, target_id) pairs; unknown ids raise KeyError
            config: Physics constants (defaults if None)
            center: Point the arrangement is centered on
            initial_positions: Known positions to start from, by node ID
        """
        self.config = config or SimulationConfig()
        self.center = np.asarray(center, dtype=float)
        self.node_ids: list[EntityId] = list(node_ids)
        self.index: dict[EntityId, int] = {node_id: i for i, node_id in enumerate(self.node_ids)}

        n = len(self.node_ids)
        self.pos = np.zeros((n, 2))
        self.vel = np.zeros((n, 2))
        self.fixed = np.zeros(n, dtype=bool)
        self.fixed_pos = np.zeros((n, 2))
        self._rng = np.random.default_rng(self.config.seed)

        self._place_nodes(initial_positions or {})
        self._init_links(links)

        self.alpha = 1.0
        self.alpha_target = 0.0
        self.tick_count = 0
        self.disposed = False
        self._stopped = n == 0
        self._state = SimulationState.IDLE if self._stopped else SimulationState.RUNNING

    def _place_nodes(self, initial_positions: Mapping[EntityId, tuple[float, float]]) -> None:
        for i, node_id in enumerate(self.node_ids):
            known = initial_positions.get(node_id)
            if known is not None:
                self.pos[i] = known
                continue
            radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
            angle = i * INITIAL_ANGLE
            self.pos[i] = self.center + radius * np.array([math.cos(angle), math.sin(angle)])

    def _init_links(self, links: Sequence[tuple[EntityId, EntityId]]) -> None:
        self.link_pairs = list(links)
        self.src = np.array([self.index[s] for s, _ in self.link_pairs], dtype=int)
        self.tgt = np.array([self.index[t] for _, t in self.link_pairs], dtype=int)

        # Links of busy nodes are weaker, and the lighter endpoint moves more
        count = np.zeros(len(self.node_ids))
        np.add.at(count, self.src, 1)
        np.add.at(count, self.tgt, 1)
        if len(self.link_pairs):
            self.link_bias = count[self.src] / (count[self.src] + count[self.tgt])
            self.link_strength = 1 / np.minimum(count[self.src], count[self.tgt])
        else:
            self.link_bias = np.zeros(0)
            self.link_strength = np.zeros(0)

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is not SimulationState.IDLE

    def _update_state(self) -> None:
        if self._stopped or (self.alpha < self.config.alpha_min and self.alpha_target < self.config.alpha_min):
            self._stopped = True
            self._state = SimulationState.IDLE
        elif self.alpha_target > 0 or self.alpha >= self.config.settling_alpha:
            self._state = SimulationState.RUNNING
        else:
            self._state = SimulationState.SETTLING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def restart(self, alpha: float = 1.0) -> None:
        """Restart at the given energy, keeping positions and pins.

        Args:
            alpha: Energy to restart at (full energy by default)
        """
        if self.disposed or not self.node_ids:
            return
        self.alpha = alpha
        self._stopped = False
        self._update_state()
        logger.debug("Simulation restarted at alpha=%.3f", alpha)

    def reheat(self, alpha_target: float | None = None) -> None:
        """Hold the energy at a working level without resetting positions.

        Args:
            alpha_target: Energy to converge to (drag target if None)
        """
        if self.disposed or not self.node_ids:
            return
        if alpha_target is None:
            alpha_target = self.config.drag_alpha_target
        self.alpha_target = alpha_target
        self._stopped = False
        self._update_state()

    def cool(self) -> None:
        """Let the energy decay back toward convergence."""
        self.alpha_target = 0.0
        if not self.disposed:
            self._update_state()

    def stop(self) -> None:
        self._stopped = True
        self._state = SimulationState.IDLE

    def dispose(self) -> None:
        """Tear the simulation down; later ticks are no-ops."""
        self.stop()
        self.disposed = True

    # ------------------------------------------------------------------
    # Pinning
    # ------------------------------------------------------------------

    def pin(self, node_id: EntityId, x: float | None = None, y: float | None = None) -> bool:
        """Fix a node at a position (its current one by default).

        Args:
            node_id: ID of the node to pin
            x: Pinned x coordinate
            y: Pinned y coordinate

        Returns:
            False if the node is not part of this simulation
        """
        i = self.index.get(node_id)
        if i is None or self.disposed:
            return False
        self.fixed[i] = True
        self.fixed_pos[i] = (
            self.pos[i, 0] if x is None else x,
            self.pos[i, 1] if y is None else y,
        )
        return True

    def move_pin(self, node_id: EntityId, x: float, y: float) -> bool:
        i = self.index.get(node_id)
        if i is None or self.disposed or not self.fixed[i]:
            return False
        self.fixed_pos[i] = (x, y)
        return True

    def unpin(self, node_id: EntityId) -> bool:
        """Release a pinned node; it resumes from its last pinned position."""
        i = self.index.get(node_id)
        if i is None or self.disposed or not self.fixed[i]:
            return False
        self.pos[i] = self.fixed_pos[i]
        self.vel[i] = 0.0
        self.fixed[i] = False
        return True

    def is_pinned(self, node_id: EntityId) -> bool:
        i = self.index.get(node_id)
        return i is not None and bool(self.fixed[i])

    def pinned_position(self, node_id: EntityId) -> tuple[float, float] | None:
        """Where a pinned node is held, or None if it is unknown or free."""
        i = self.index.get(node_id)
        if i is None or not self.fixed[i]:
            return None
        x, y = self.fixed_pos[i]
        return float(x), float(y)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance the simulation by one step."""
        if self.disposed or not self.node_ids:
            return

        self.alpha += (self.alpha_target - self.alpha) * self.config.alpha_decay

        self._apply_link_force()
        self._apply_charge_force()
        self._apply_center_force()
        self._apply_collision_force()

        free = ~self.fixed
        self.vel[free] *= 1 - self.config.velocity_decay
        self.pos[free] += self.vel[free]
        self.pos[self.fixed] = self.fixed_pos[self.fixed]
        self.vel[self.fixed] = 0.0

        self.tick_count += 1
        self._update_state()

    def run_until_settled(self, max_ticks: int | None = None) -> int:
        """Tick synchronously until the simulation goes idle.

        Args:
            max_ticks: Upper bound on ticks (enough to cool from full energy if None)

        Returns:
            Number of ticks run
        """
        if max_ticks is None:
            max_ticks = self.config.ticks_to_settle + 2
        ticks = 0
        while self.is_active and ticks < max_ticks:
            self.tick()
            ticks += 1
        return ticks

    def _jiggle(self, shape) -> np.ndarray:
        return (self._rng.random(shape) - 0.5) * 1e-6

    def _apply_link_force(self) -> None:
        if not len(self.link_pairs):
            return
        delta = (self.pos[self.tgt] + self.vel[self.tgt]) - (self.pos[self.src] + self.vel[self.src])
        zero = delta == 0
        if zero.any():
            delta[zero] = self._jiggle(int(zero.sum()))
        length = np.linalg.norm(delta, axis=1)
        k = (length - self.config.link_distance) / length * self.alpha * self.link_strength
        delta *= k[:, None]
        np.add.at(self.vel, self.tgt, -delta * self.link_bias[:, None])
        np.add.at(self.vel, self.src, delta * (1 - self.link_bias)[:, None])

    def _apply_charge_force(self) -> None:
        n = len(self.node_ids)
        if n < 2:
            return
        # diff[i, j] points from node i to node j
        diff = self.pos[None, :, :] - self.pos[:, None, :]
        dist2 = np.einsum("ijk,ijk->ij", diff, diff)
        # Soften very close pairs, like a minimum distance of 1
        dist2 = np.where(dist2 < 1.0, np.sqrt(dist2), dist2)
        np.fill_diagonal(dist2, np.inf)
        dist2 = np.maximum(dist2, 1e-9)
        weight = self.config.charge_strength * self.alpha / dist2
        self.vel += np.einsum("ijk,ij->ik", diff, weight)

    def _apply_center_force(self) -> None:
        if not len(self.node_ids):
            return
        self.pos -= self.pos.mean(axis=0) - self.center

    def _apply_collision_force(self) -> None:
        n = len(self.node_ids)
        if n < 2:
            return
        min_dist = 2 * self.config.collision_radius
        predicted = self.pos + self.vel
        # delta[i, j] points from node j to node i
        delta = predicted[:, None, :] - predicted[None, :, :]
        dist = np.linalg.norm(delta, axis=2)
        overlap = np.triu(dist < min_dist, k=1)
        if not overlap.any():
            return

        coincident = overlap & (dist == 0)
        if coincident.any():
            delta[coincident] = self._jiggle((int(coincident.sum()), 2))
            dist = np.linalg.norm(delta, axis=2)

        safe = np.where(overlap, dist, 1.0)
        k = np.where(overlap, (min_dist - safe) / safe, 0.0)
        push = delta * k[:, :, None]
        # Equal radii: both nodes of an overlapping pair move half the way
        self.vel += 0.5 * push.sum(axis=1)
        self.vel -= 0.5 * push.sum(axis=0)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def position(self, node_id: EntityId) -> tuple[float, float] | None:
        i = self.index.get(node_id)
        if i is None:
            return None
        return float(self.pos[i, 0]), float(self.pos[i, 1])

    def positions(self) -> dict[EntityId, tuple[float, float]]:
        """Snapshot of all node positions.

        Returns:
            Mapping node_id -> (x, y)
        """
        return {
            node_id: (float(self.pos[i, 0]), float(self.pos[i, 1]))
            for node_id, i in self.index.items()
        }

    def link_anchors(self) -> list[tuple[tuple[float, float], tuple[float, float]]]:
        """Endpoint positions of every link, in link order."""
        return [
            (
                (float(self.pos[s, 0]), float(self.pos[s, 1])),
                (float(self.pos[t, 0]), float(self.pos[t, 1])),
            )
            for s, t in zip(self.src, self.tgt)
        ]

    def __len__(self) -> int:
        return len(self.node_ids)

    def __repr__(self) -> str:
        return f"Simulation(nodes={len(self.node_ids)}, links={len(self.link_pairs)}, state={self._state.value}, alpha={self.alpha:.3f})"
