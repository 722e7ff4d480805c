"""Per-frame driver for a simulation.

The loop is an asyncio task with an explicit lifecycle (start, pause, resume,
stop). It is bound to one simulation; a replaced simulation gets a new loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from relgraph.simulation import Simulation

logger = logging.getLogger(__name__)

TickListener = Callable[["Simulation"], None]


class SimulationLoop:
    """Ticks a simulation once per frame until it goes idle."""

    def __init__(
        self,
        simulation: Simulation,
        frame_interval: float = 1 / 60,
        on_tick: TickListener | None = None,
    ) -> None:
        """Initialize the loop.

        Args:
            simulation: Simulation to drive
            frame_interval: Seconds between ticks
            on_tick: Called with the simulation after every tick
        """
        self.simulation = simulation
        self.frame_interval = frame_interval
        self.on_tick = on_tick
        self._task: asyncio.Task | None = None
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def start(self) -> None:
        """Start ticking (no-op if already running or stopped).

        Must be called from a running event loop.
        """
        if self._stopped or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(self._on_done)

    def pause(self) -> None:
        self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    def stop(self) -> None:
        """Cancel the task for good; the loop cannot be restarted."""
        self._stopped = True
        self._resumed.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_stopped(self) -> None:
        """Wait until the task has finished after stop() or going idle."""
        if self._task is None:
            return
        await asyncio.wait([self._task])

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Animation loop for %r crashed", self.simulation, exc_info=error)

    async def _run(self) -> None:
        simulation = self.simulation
        logger.debug("Animation loop started for %r", simulation)
        while not self._stopped and simulation.is_active:
            await self._resumed.wait()
            if self._stopped:
                break
            simulation.tick()
            if self.on_tick is not None:
                self.on_tick(simulation)
            await asyncio.sleep(self.frame_interval)
        logger.debug("Animation loop finished for %r", simulation)

    def __repr__(self) -> str:
        return f"SimulationLoop(running={self.running}, paused={self.paused}, stopped={self._stopped})"
