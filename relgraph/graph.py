"""Reconciled relationship graph.

The graph is built from two independently maintained collections. Relationships
whose endpoints are missing from the entity collection are expected under
eventual consistency: they are excluded and reported, not raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from relgraph.models import Entity, EntityId, Relationship

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DroppedRelationship:
    """Diagnostic for a relationship excluded from the graph."""

    relationship_id: EntityId
    name: str
    source_id: EntityId
    target_id: EntityId
    missing_source: bool
    missing_target: bool


class Graph:
    """Reconciled pair of entities and relationships.

    Every relationship's source and target id is present in ``nodes``.
    """

    def __init__(
        self,
        nodes: dict[EntityId, Entity] | None = None,
        edges: list[Relationship] | None = None,
        dropped: list[DroppedRelationship] | None = None,
    ) -> None:
        self.nodes: dict[EntityId, Entity] = nodes or {}
        self.edges: list[Relationship] = edges or []
        self.dropped: list[DroppedRelationship] = dropped or []
        self._edges_by_id = {edge.id: edge for edge in self.edges}

    def get_node(self, node_id: EntityId) -> Entity | None:
        """Get an entity by ID.

        Args:
            node_id: ID of the entity to retrieve

        Returns:
            Entity if found, None otherwise
        """
        return self.nodes.get(node_id)

    def get_edge(self, edge_id: EntityId) -> Relationship | None:
        return self._edges_by_id.get(edge_id)

    def nodes_by_type(self, entity_type: str) -> list[Entity]:
        """Get all entities with a specific type.

        Args:
            entity_type: Type to filter by

        Returns:
            Entities with the type, in graph order
        """
        return [node for node in self.nodes.values() if node.type == entity_type]

    def edges_by_type(self, relationship_type: str) -> list[Relationship]:
        return [edge for edge in self.edges if edge.type == relationship_type]

    def __len__(self) -> int:
        """Return the number of entities in the graph."""
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self.nodes)}, edges={len(self.edges)}, dropped={len(self.dropped)})"


def build_graph(
    entities: Iterable[Entity],
    relationships: Iterable[Relationship],
) -> Graph:
    """Reconcile entities and relationships into a Graph.

    A relationship is kept only if both its source and target are known
    entities. Each dropped relationship is logged with its name and both
    endpoint ids and recorded in ``Graph.dropped``.

    Args:
        entities: Entity snapshots
        relationships: Relationship snapshots

    Returns:
        Graph without dangling relationships
    """
    nodes: dict[EntityId, Entity] = {}
    for entity in entities:
        if entity.id in nodes:
            logger.warning("Duplicate entity id %r ignored (name=%r)", entity.id, entity.name)
            continue
        nodes[entity.id] = entity

    edges = []
    dropped = []
    for relationship in relationships:
        missing_source = relationship.source_id not in nodes
        missing_target = relationship.target_id not in nodes
        if missing_source or missing_target:
            logger.warning(
                "Relationship %s (%r) references missing entity: source=%r, target=%r",
                relationship.name,
                relationship.id,
                relationship.source_id,
                relationship.target_id,
            )
            dropped.append(
                DroppedRelationship(
                    relationship_id=relationship.id,
                    name=relationship.name,
                    source_id=relationship.source_id,
                    target_id=relationship.target_id,
                    missing_source=missing_source,
                    missing_target=missing_target,
                )
            )
            continue
        edges.append(relationship)

    return Graph(nodes=nodes, edges=edges, dropped=dropped)
