"""Pointer interaction against the live graph.

Hover produces transient tooltips, click produces detail records and drag
pins a node to the pointer. Targets are resolved against the engine's current
data at event time; a target that no longer resolves is ignored.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Union

from relgraph.models import EntityId

if TYPE_CHECKING:
    from relgraph.config import EngineConfig
    from relgraph.filters import VisibleSubgraph
    from relgraph.simulation import Simulation
    from relgraph.styles import StyleTable

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description"


class GraphView(Protocol):
    """What the interaction layer reads from its owner."""

    visible: VisibleSubgraph
    simulation: Optional[Simulation]
    styles: StyleTable
    config: EngineConfig


class TargetKind(str, Enum):
    NODE = "node"
    EDGE = "edge"


@dataclass(frozen=True)
class Tooltip:
    """Transient hover content, shown at the pointer location."""

    kind: TargetKind
    target_id: EntityId
    title: str
    fields: dict[str, str]
    x: float
    y: float


@dataclass(frozen=True)
class NodeDetail:
    """Full record of a selected entity."""

    id: EntityId
    name: str
    type: str
    description: str
    attributes: dict[str, Any] = field(default_factory=dict)
    features: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EdgeDetail:
    """Full record of a selected relationship."""

    id: EntityId
    name: str
    type: str
    type_label: str
    strength: str
    source_id: EntityId
    source_name: str
    target_id: EntityId
    target_name: str
    description: str
    properties: dict[str, Any] = field(default_factory=dict)


class DragPhase(str, Enum):
    START = "start"
    MOVE = "move"
    END = "end"


@dataclass(frozen=True)
class DragEvent:
    phase: DragPhase
    node_id: EntityId
    x: float
    y: float


Detail = Union[NodeDetail, EdgeDetail]
HoverHandler = Callable[[Optional[Tooltip]], None]
SelectHandler = Callable[[Detail], None]
DragHandler = Callable[[DragEvent], None]


def subscribe(handlers: list, handler: Callable) -> Callable[[], None]:
    handlers.append(handler)

    def unsubscribe() -> None:
        if handler in handlers:
            handlers.remove(handler)

    return unsubscribe


def _segment_distance(px: float, py: float, a: tuple[float, float], b: tuple[float, float]) -> float:
    ax, ay = a
    dx, dy = b[0] - ax, b[1] - ay
    length2 = dx * dx + dy * dy
    if length2 == 0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / length2))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


class InteractionLayer:
    """Translates pointer events into queries against a GraphView.

    Handlers are registered with on_hover, on_select and on_drag; each
    registration returns a callable that removes the handler.
    """

    def __init__(self, view: GraphView) -> None:
        self.view = view
        self._hover_handlers: list[HoverHandler] = []
        self._select_handlers: list[SelectHandler] = []
        self._drag_handlers: list[DragHandler] = []
        self.hovered: tuple[TargetKind, EntityId] | None = None
        self.dragging: EntityId | None = None

    def on_hover(self, handler: HoverHandler) -> Callable[[], None]:
        return subscribe(self._hover_handlers, handler)

    def on_select(self, handler: SelectHandler) -> Callable[[], None]:
        return subscribe(self._select_handlers, handler)

    def on_drag(self, handler: DragHandler) -> Callable[[], None]:
        return subscribe(self._drag_handlers, handler)

    def reset(self) -> None:
        """Forget hover and drag state, e.g. after the data was replaced."""
        self.hovered = None
        self.dragging = None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def node_detail(self, node_id: EntityId) -> NodeDetail | None:
        """Resolve a visible entity into its detail record.

        Args:
            node_id: ID of the entity

        Returns:
            Detail record, or None if the entity is not visible
        """
        node = self.view.visible.get_node(node_id)
        if node is None:
            return None
        return NodeDetail(
            id=node.id,
            name=node.name,
            type=node.type,
            description=node.description or NO_DESCRIPTION,
            attributes=node.attributes,
            features=node.features,
        )

    def edge_detail(self, edge_id: EntityId) -> EdgeDetail | None:
        """Resolve a visible relationship into its detail record.

        The strength classification is derived from the relationship type.

        Args:
            edge_id: ID of the relationship

        Returns:
            Detail record, or None if the relationship or an endpoint is not visible
        """
        visible = self.view.visible
        edge = visible.get_edge(edge_id)
        if edge is None:
            return None
        source = visible.get_node(edge.source_id)
        target = visible.get_node(edge.target_id)
        if source is None or target is None:
            return None
        style = self.view.styles.relationship_style(edge.type)
        return EdgeDetail(
            id=edge.id,
            name=edge.name or style.label,
            type=edge.type,
            type_label=style.label,
            strength=style.strength.value,
            source_id=source.id,
            source_name=source.name,
            target_id=target.id,
            target_name=target.name,
            description=edge.description or NO_DESCRIPTION,
            properties=edge.properties,
        )

    # ------------------------------------------------------------------
    # Hit-testing
    # ------------------------------------------------------------------

    def node_at(self, x: float, y: float) -> EntityId | None:
        """Find the nearest node whose circle contains the point."""
        simulation = self.view.simulation
        if simulation is None:
            return None
        radius = self.view.config.node_radius
        best, best_distance = None, radius
        for node_id, (nx_, ny_) in simulation.positions().items():
            distance = math.hypot(x - nx_, y - ny_)
            if distance <= best_distance:
                best, best_distance = node_id, distance
        return best

    def edge_at(self, x: float, y: float) -> EntityId | None:
        """Find the nearest link within the hit tolerance of the point."""
        simulation = self.view.simulation
        if simulation is None:
            return None
        tolerance = self.view.config.link_tolerance
        best, best_distance = None, tolerance
        for edge in self.view.visible.edges:
            a = simulation.position(edge.source_id)
            b = simulation.position(edge.target_id)
            if a is None or b is None:
                continue
            distance = _segment_distance(x, y, a, b)
            if distance <= best_distance:
                best, best_distance = edge.id, distance
        return best

    def target_at(self, x: float, y: float) -> tuple[TargetKind, EntityId] | None:
        # Nodes are drawn above links and win ties
        node_id = self.node_at(x, y)
        if node_id is not None:
            return TargetKind.NODE, node_id
        edge_id = self.edge_at(x, y)
        if edge_id is not None:
            return TargetKind.EDGE, edge_id
        return None

    # ------------------------------------------------------------------
    # Hover
    # ------------------------------------------------------------------

    def hover_node(self, node_id: EntityId, x: float, y: float) -> Tooltip | None:
        """Show the tooltip of a node at the pointer location.

        Returns:
            The tooltip, or None if the node no longer resolves
        """
        node = self.view.visible.get_node(node_id)
        if node is None:
            return None
        tooltip = Tooltip(
            kind=TargetKind.NODE,
            target_id=node.id,
            title=node.name,
            fields={"Type": node.type, "Description": node.description or NO_DESCRIPTION},
            x=x,
            y=y,
        )
        self._show(tooltip)
        return tooltip

    def hover_edge(self, edge_id: EntityId, x: float, y: float) -> Tooltip | None:
        """Show the tooltip of a relationship at the pointer location.

        Returns:
            The tooltip, or None if the relationship no longer resolves
        """
        detail = self.edge_detail(edge_id)
        if detail is None:
            return None
        tooltip = Tooltip(
            kind=TargetKind.EDGE,
            target_id=detail.id,
            title=detail.name,
            fields={
                "Type": detail.type_label,
                "Source": detail.source_name,
                "Target": detail.target_name,
                "Description": detail.description,
            },
            x=x,
            y=y,
        )
        self._show(tooltip)
        return tooltip

    def pointer_out(self) -> None:
        """Hide the tooltip."""
        if self.hovered is None:
            return
        self.hovered = None
        for handler in list(self._hover_handlers):
            handler(None)

    def _show(self, tooltip: Tooltip) -> None:
        self.hovered = (tooltip.kind, tooltip.target_id)
        for handler in list(self._hover_handlers):
            handler(tooltip)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_node(self, node_id: EntityId) -> NodeDetail | None:
        detail = self.node_detail(node_id)
        if detail is not None:
            self._select(detail)
        return detail

    def select_edge(self, edge_id: EntityId) -> EdgeDetail | None:
        detail = self.edge_detail(edge_id)
        if detail is not None:
            self._select(detail)
        return detail

    def _select(self, detail: Detail) -> None:
        for handler in list(self._select_handlers):
            handler(detail)

    # ------------------------------------------------------------------
    # Drag
    # ------------------------------------------------------------------

    def drag_start(self, node_id: EntityId, x: float | None = None, y: float | None = None) -> bool:
        """Pin a node at its current position and raise the energy.

        Args:
            node_id: ID of the dragged node
            x: Pointer x (used only for the emitted event)
            y: Pointer y (used only for the emitted event)

        Returns:
            False if the node does not resolve
        """
        simulation = self.view.simulation
        if simulation is None or self.view.visible.get_node(node_id) is None:
            return False
        if not simulation.pin(node_id):
            return False
        simulation.reheat()
        self.dragging = node_id
        px, py = simulation.position(node_id)
        self._drag(DragEvent(DragPhase.START, node_id, px if x is None else x, py if y is None else y))
        return True

    def drag_move(self, x: float, y: float) -> bool:
        """Move the pinned node to follow the pointer."""
        if self.dragging is None:
            return False
        simulation = self.view.simulation
        if simulation is None or not simulation.move_pin(self.dragging, x, y):
            logger.debug("Dropping drag of %r: node no longer simulated", self.dragging)
            self.dragging = None
            return False
        self._drag(DragEvent(DragPhase.MOVE, self.dragging, x, y))
        return True

    def drag_end(self) -> bool:
        """Release the pin and let the energy decay."""
        if self.dragging is None:
            return False
        node_id, self.dragging = self.dragging, None
        simulation = self.view.simulation
        if simulation is None or not simulation.is_pinned(node_id):
            return False
        x, y = simulation.pinned_position(node_id)
        simulation.cool()
        simulation.unpin(node_id)
        self._drag(DragEvent(DragPhase.END, node_id, x, y))
        return True

    def _drag(self, event: DragEvent) -> None:
        for handler in list(self._drag_handlers):
            handler(event)

    # ------------------------------------------------------------------
    # Coordinate-based dispatch
    # ------------------------------------------------------------------

    def pointer_move(self, x: float, y: float) -> None:
        """Route a pointer move to drag, hover or pointer-out."""
        if self.dragging is not None:
            self.drag_move(x, y)
            return
        target = self.target_at(x, y)
        if target is None:
            self.pointer_out()
        elif target[0] is TargetKind.NODE:
            self.hover_node(target[1], x, y)
        else:
            self.hover_edge(target[1], x, y)

    def press(self, x: float, y: float) -> bool:
        """Start dragging the node under the pointer, if any."""
        node_id = self.node_at(x, y)
        if node_id is None:
            return False
        return self.drag_start(node_id, x, y)

    def release(self) -> bool:
        return self.drag_end()

    def click(self, x: float, y: float) -> Detail | None:
        """Select whatever is under the pointer."""
        target = self.target_at(x, y)
        if target is None:
            return None
        kind, target_id = target
        if kind is TargetKind.NODE:
            return self.select_node(target_id)
        return self.select_edge(target_id)
