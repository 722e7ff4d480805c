"""Settings for the graph engine.

Values are read from the environment (and a local .env file) so a page can
point the engine at another API without code changes.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"


@dataclass(frozen=True)
class SimulationConfig:
    """Physics constants of the force-directed layout.

    Attributes:
        link_distance: Rest length of every link
        charge_strength: Many-body strength (negative repels)
        collision_radius: Minimum center-to-center separation is twice this
        alpha_min: Energy below which the simulation goes idle
        alpha_decay: Fraction of the remaining energy gap closed per tick
        settling_alpha: Energy below which a cooling simulation is settling
        drag_alpha_target: Energy held while a node is dragged
        velocity_decay: Fraction of velocity lost per tick
        frame_interval: Seconds between animation ticks
        seed: Seed for the jitter applied to coincident nodes
    """

    link_distance: float = 100.0
    charge_strength: float = -300.0
    collision_radius: float = 30.0
    alpha_min: float = 0.001
    alpha_decay: float = 1 - 0.001 ** (1 / 300)
    settling_alpha: float = 0.1
    drag_alpha_target: float = 0.3
    velocity_decay: float = 0.4
    frame_interval: float = 1 / 60
    seed: int | None = 42

    @property
    def ticks_to_settle(self) -> int:
        """Number of ticks a cooling simulation needs to go from 1 to alpha_min."""
        return math.ceil(math.log(self.alpha_min) / math.log(1 - self.alpha_decay))


@dataclass(frozen=True)
class EngineConfig:
    """Engine-wide settings.

    Attributes:
        api_base_url: Base URL of the things/relationships API
        request_timeout: Timeout in seconds for each API request
        width: Viewport width, used for the centering force
        height: Viewport height, used for the centering force
        node_radius: Hit radius of a node for pointer events
        link_tolerance: Max pointer distance from a link to hit it
        simulation: Physics constants
    """

    api_base_url: str = "http://localhost:8080"
    request_timeout: float = 30.0
    width: float = 800.0
    height: float = 600.0
    node_radius: float = 15.0
    link_tolerance: float = 5.0
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from RELGRAPH_* environment variables.

        Returns:
            Config with defaults for unset variables
        """
        return cls(
            api_base_url=os.getenv("RELGRAPH_API_URL", "http://localhost:8080"),
            request_timeout=float(os.getenv("RELGRAPH_TIMEOUT", "30")),
            width=float(os.getenv("RELGRAPH_WIDTH", "800")),
            height=float(os.getenv("RELGRAPH_HEIGHT", "600")),
        )


def configure_logging(level: str | int | None = None) -> None:
    """Install a console handler on the root logger.

    Args:
        level: Log level name or number (uses RELGRAPH_LOG_LEVEL, then INFO)
    """
    if level is None:
        level = os.getenv("RELGRAPH_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")
