"""Graph engine for one page.

Owns the reconciled graph, the visible subgraph, the simulation and its
animation loop, and exposes the operations the surrounding page calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import TYPE_CHECKING, Callable, Protocol

from relgraph.animation import SimulationLoop
from relgraph.config import EngineConfig
from relgraph.fetcher import FetchError, GraphFetcher
from relgraph.filters import FilterConfig, VisibleSubgraph, apply_filter
from relgraph.graph import Graph, build_graph
from relgraph.interaction import InteractionLayer, subscribe
from relgraph.simulation import Simulation, SimulationState
from relgraph.styles import StyleTable

if TYPE_CHECKING:
    from relgraph.interaction import DragHandler, EdgeDetail, HoverHandler, NodeDetail, SelectHandler
    from relgraph.models import Entity, EntityId, EntityType, Relationship, RelationshipType
    from relgraph.render import RenderSurface

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[FetchError], None]
TickHandler = Callable[[Simulation], None]


class Fetcher(Protocol):
    async def fetch(self) -> tuple[list[Entity], list[Relationship]]: ...


class GraphEngine:
    """Main interface of the relationship graph.

    Orchestrates fetching, reconciliation, filtering, simulation and
    interaction for one rendering surface.
    """

    def __init__(
        self,
        fetcher: Fetcher | None = None,
        config: EngineConfig | None = None,
        styles: StyleTable | None = None,
        autostart: bool = True,
    ) -> None:
        """Initialize the engine.

        Args:
            fetcher: Source of entities and relationships (HTTP fetcher from config if None)
            config: Engine settings (read from the environment if None)
            styles: Style tables for details and rendering
            autostart: Drive the simulation with an animation loop; when False
                the caller steps it, e.g. with settle()
        """
        self.config = config or EngineConfig.from_env()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or GraphFetcher.from_config(self.config)
        self.styles = styles or StyleTable()
        self.autostart = autostart

        self.graph = Graph()
        self.filter = FilterConfig()
        self.visible = VisibleSubgraph()
        self.simulation: Simulation | None = None
        self.loop: SimulationLoop | None = None
        self.surface: RenderSurface | None = None
        self.loaded = False
        self.last_error: FetchError | None = None

        self.interaction = InteractionLayer(self)
        self._error_handlers: list[ErrorHandler] = []
        self._tick_handlers: list[TickHandler] = []
        self._refresh_lock = asyncio.Lock()

        # Drag start and end change the energy; the loop may need waking
        self.interaction.on_drag(lambda event: self._ensure_running())

    # ------------------------------------------------------------------
    # Page operations
    # ------------------------------------------------------------------

    async def initialize(self, surface: RenderSurface | None = None) -> bool:
        """Attach a rendering surface and perform the first load.

        Args:
            surface: Where frames are drawn

        Returns:
            True if the first load succeeded
        """
        self.surface = surface
        return await self.refresh()

    async def refresh(self) -> bool:
        """Re-fetch both collections and rebuild everything from scratch.

        On failure the previous graph, view and simulation are kept and the
        error handlers are notified once. The error is kept in last_error
        until the next successful load.

        Returns:
            True if the graph was rebuilt
        """
        async with self._refresh_lock:
            try:
                entities, relationships = await self.fetcher.fetch()
            except FetchError as e:
                logger.error("Failed to load graph data: %s", e)
                self.last_error = e
                for handler in list(self._error_handlers):
                    handler(e)
                return False

            self.graph = build_graph(entities, relationships)
            self.loaded = True
            self.last_error = None
            logger.info(
                "Loaded graph: %d entities, %d relationships (%d dropped)",
                len(self.graph.nodes),
                len(self.graph.edges),
                len(self.graph.dropped),
            )
            self._rebuild(keep_positions=False)
            return True

    def apply_filter(
        self,
        relationship_type: RelationshipType | str | None = None,
        entity_type: EntityType | str | None = None,
    ) -> VisibleSubgraph:
        """Re-filter the graph and restart the simulation.

        Nodes that stay visible keep their positions.

        Args:
            relationship_type: Only show relationships of this type
            entity_type: Only show entities of this type

        Returns:
            The new visible subgraph

        Raises:
            ValueError: If a filter value is not a known type
        """
        self.filter = FilterConfig(relationship_type=relationship_type, entity_type=entity_type)
        logger.debug("Applying filter %s", self.filter)
        self._rebuild(keep_positions=True)
        return self.visible

    def reset(self) -> None:
        """Restart the simulation at full energy without refetching."""
        if self.simulation is None:
            return
        self.simulation.restart()
        self._ensure_running()

    def settle(self, max_ticks: int | None = None) -> int:
        """Step the simulation synchronously until it goes idle.

        Returns:
            Number of ticks run
        """
        if self.simulation is None:
            return 0
        ticks = self.simulation.run_until_settled(max_ticks)
        self._draw()
        return ticks

    def pause(self) -> None:
        if self.loop is not None:
            self.loop.pause()

    def resume(self) -> None:
        if self.loop is not None:
            self.loop.resume()

    async def close(self) -> None:
        """Stop the animation, drop the simulation and release the HTTP session."""
        loop = self._teardown()
        if loop is not None:
            await loop.wait_stopped()
        if self.surface is not None:
            self.surface.clear()
        if self._owns_fetcher:
            self.fetcher.close()

    # ------------------------------------------------------------------
    # Event registration and queries
    # ------------------------------------------------------------------

    def on_hover(self, handler: HoverHandler) -> Callable[[], None]:
        return self.interaction.on_hover(handler)

    def on_select(self, handler: SelectHandler) -> Callable[[], None]:
        return self.interaction.on_select(handler)

    def on_drag(self, handler: DragHandler) -> Callable[[], None]:
        return self.interaction.on_drag(handler)

    def on_error(self, handler: ErrorHandler) -> Callable[[], None]:
        return subscribe(self._error_handlers, handler)

    def on_tick(self, handler: TickHandler) -> Callable[[], None]:
        return subscribe(self._tick_handlers, handler)

    def node_detail(self, node_id: EntityId) -> NodeDetail | None:
        return self.interaction.node_detail(node_id)

    def edge_detail(self, edge_id: EntityId) -> EdgeDetail | None:
        return self.interaction.edge_detail(edge_id)

    def get_stats(self) -> dict:
        """Get statistics about the loaded graph and the simulation.

        Returns:
            Dictionary with graph, view and simulation statistics
        """
        simulation = self.simulation
        return {
            "total_nodes": len(self.graph.nodes),
            "total_edges": len(self.graph.edges),
            "dropped_edges": len(self.graph.dropped),
            "visible_nodes": len(self.visible.nodes),
            "visible_edges": len(self.visible.edges),
            "by_entity_type": dict(Counter(node.type for node in self.graph.nodes.values())),
            "by_relationship_type": dict(Counter(edge.type for edge in self.graph.edges)),
            "simulation_state": (simulation.state if simulation else SimulationState.IDLE).value,
            "alpha": simulation.alpha if simulation else 0.0,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rebuild(self, keep_positions: bool) -> None:
        """Replace the visible subgraph and its simulation.

        The previous loop is stopped and the previous simulation disposed
        before the new one exists, so stale ticks cannot reach new data.
        """
        previous = self.simulation.positions() if keep_positions and self.simulation else None
        self._teardown()
        self.interaction.reset()

        self.visible = apply_filter(self.graph, self.filter)
        self.simulation = Simulation(
            node_ids=self.visible.node_ids,
            links=[(edge.source_id, edge.target_id) for edge in self.visible.edges],
            config=self.config.simulation,
            center=self.config.center,
            initial_positions=previous,
        )
        self.simulation.restart()
        self._draw()
        if self.autostart:
            self.loop = SimulationLoop(
                self.simulation,
                frame_interval=self.config.simulation.frame_interval,
                on_tick=self._on_tick,
            )
            self.loop.start()

    def _teardown(self) -> SimulationLoop | None:
        loop = self.loop
        if loop is not None:
            loop.stop()
        if self.simulation is not None:
            self.simulation.dispose()
        self.loop = None
        return loop

    def _ensure_running(self) -> None:
        if self.loop is None or self.simulation is None:
            return
        if self.loop.running or not self.simulation.is_active:
            return
        # A finished loop cannot be restarted; replace it for the same simulation
        self.loop = SimulationLoop(
            self.simulation,
            frame_interval=self.config.simulation.frame_interval,
            on_tick=self._on_tick,
        )
        self.loop.start()

    def _on_tick(self, simulation: Simulation) -> None:
        if simulation is not self.simulation:
            return
        # A failing surface or handler must not stop the animation
        try:
            self._draw()
        except Exception:
            logger.exception("Drawing frame failed")
        for handler in list(self._tick_handlers):
            try:
                handler(simulation)
            except Exception:
                logger.exception("Tick handler %r failed", handler)

    def _draw(self) -> None:
        if self.surface is not None and self.simulation is not None:
            self.surface.draw(self.visible, self.simulation.positions())

    def __repr__(self) -> str:
        return f"GraphEngine(graph={self.graph!r}, visible={len(self.visible)}, simulation={self.simulation!r})"
