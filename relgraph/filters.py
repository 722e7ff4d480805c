"""Filter engine deriving the visible subgraph.

Entity-type and relationship-type filters combine conjunctively. Removing a
node always removes its incident relationships, even those that pass the
relationship-type filter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

from relgraph.models import Entity, EntityId, EntityType, Relationship, RelationshipType

if TYPE_CHECKING:
    from relgraph.graph import Graph


@dataclass(frozen=True)
class FilterConfig:
    """Filter selection; None means "all".

    Strings are coerced into the type enumerations, an empty string counts
    as no filter and unknown values raise ValueError.
    """

    relationship_type: Optional[RelationshipType] = None
    entity_type: Optional[EntityType] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "relationship_type", _coerce(RelationshipType, self.relationship_type))
        object.__setattr__(self, "entity_type", _coerce(EntityType, self.entity_type))

    @property
    def is_empty(self) -> bool:
        return self.relationship_type is None and self.entity_type is None


def _coerce(enum_cls, value: Union[str, None]):
    if value is None or value == "":
        return None
    return enum_cls(value)


@dataclass(frozen=True)
class VisibleSubgraph:
    """Filtered view of a Graph.

    Every edge's source and target are in ``nodes``.
    """

    nodes: tuple[Entity, ...] = ()
    edges: tuple[Relationship, ...] = ()
    config: FilterConfig = field(default_factory=FilterConfig)
    _nodes_by_id: dict = field(init=False, repr=False, compare=False)
    _edges_by_id: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_nodes_by_id", {node.id: node for node in self.nodes})
        object.__setattr__(self, "_edges_by_id", {edge.id: edge for edge in self.edges})

    @property
    def node_ids(self) -> list[EntityId]:
        return [node.id for node in self.nodes]

    @property
    def edge_ids(self) -> list[EntityId]:
        return [edge.id for edge in self.edges]

    def get_node(self, node_id: EntityId) -> Entity | None:
        return self._nodes_by_id.get(node_id)

    def get_edge(self, edge_id: EntityId) -> Relationship | None:
        return self._edges_by_id.get(edge_id)

    def __len__(self) -> int:
        return len(self.nodes)


def apply_filter(graph: Graph, config: FilterConfig | None = None) -> VisibleSubgraph:
    """Derive the visible subgraph of a graph.

    Args:
        graph: Reconciled graph
        config: Filter selection (no filtering if None)

    Returns:
        Visible subgraph in graph order
    """
    if config is None:
        config = FilterConfig()

    nodes = list(graph.nodes.values())
    if config.entity_type is not None:
        nodes = [node for node in nodes if node.type == config.entity_type.value]

    edges = graph.edges
    if config.relationship_type is not None:
        edges = [edge for edge in edges if edge.type == config.relationship_type.value]

    # Always re-intersect so no edge dangles after node filtering
    visible_ids = {node.id for node in nodes}
    edges = [
        edge for edge in edges
        if edge.source_id in visible_ids and edge.target_id in visible_ids
    ]

    return VisibleSubgraph(nodes=tuple(nodes), edges=tuple(edges), config=config)
