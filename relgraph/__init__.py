"""relgraph: interactive relationship-graph engine.

Reconciles entities and relationships fetched from an HTTP API into a
graph, filters it by entity and relationship type, lays it out with a
force-directed simulation and answers hover, click and drag queries against
the live layout.
"""

from relgraph.animation import SimulationLoop
from relgraph.config import EngineConfig, SimulationConfig, configure_logging
from relgraph.engine import GraphEngine
from relgraph.fetcher import FetchError, GraphFetcher
from relgraph.filters import FilterConfig, VisibleSubgraph, apply_filter
from relgraph.graph import DroppedRelationship, Graph, build_graph
from relgraph.interaction import DragEvent, EdgeDetail, InteractionLayer, NodeDetail, Tooltip
from relgraph.models import Entity, EntityType, Relationship, RelationshipType, Strength
from relgraph.simulation import Simulation, SimulationState
from relgraph.styles import StyleTable

__version__ = "0.1.0"
__all__ = [
    "GraphEngine",
    "GraphFetcher",
    "FetchError",
    "Entity",
    "EntityType",
    "Relationship",
    "RelationshipType",
    "Strength",
    "Graph",
    "DroppedRelationship",
    "build_graph",
    "FilterConfig",
    "VisibleSubgraph",
    "apply_filter",
    "Simulation",
    "SimulationState",
    "SimulationLoop",
    "InteractionLayer",
    "Tooltip",
    "NodeDetail",
    "EdgeDetail",
    "DragEvent",
    "StyleTable",
    "EngineConfig",
    "SimulationConfig",
    "configure_logging",
]
