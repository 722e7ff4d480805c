"""Basic usage example for relgraph.

Demonstrates reconciliation, filtering and layout on sample API payloads.

To run against a live API:
1. Set RELGRAPH_API_URL (default: http://localhost:8080)
2. Run this script with --live

Without --live the bundled sample payloads are used (no API required).
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path for imports without pip install
sys.path.insert(0, str(Path(__file__).parent.parent))

from relgraph import FilterConfig, GraphEngine, apply_filter, build_graph, configure_logging
from relgraph.fetcher import parse_relationships, parse_things, unwrap_envelope
from relgraph.simulation import Simulation

THINGS_RESPONSE = {
    "success": True,
    "data": [
        {"id": 1, "name": "Alice", "type": "person", "description": "Plant operator"},
        {"id": 2, "name": "Sensor-1", "type": "machine", "description": "Temperature sensor"},
        {"id": 3, "name": "Line A", "type": "object", "description": "Assembly line"},
    ],
    "count": 3,
}

RELATIONSHIPS_RESPONSE = {
    "success": True,
    "data": {
        "data": [
            {"id": "r1", "sourceId": 1, "targetId": 2, "type": "owns", "name": "Owns"},
            {"id": "r2", "sourceId": 1, "targetId": 99, "type": "relates_to", "name": "Ghost"},
            {"id": "r3", "sourceId": 3, "targetId": 2, "type": "contains", "name": "Contains",
             "properties": {"slot": 4}},
        ],
        "count": 3,
    },
}


def run_offline():
    """Build, filter and lay out the sample payloads."""
    entities = parse_things(unwrap_envelope(THINGS_RESPONSE, "things"))
    relationships = parse_relationships(unwrap_envelope(RELATIONSHIPS_RESPONSE, "relationships"))

    print("=" * 60)
    print("RECONCILING")
    print("=" * 60)

    graph = build_graph(entities, relationships)
    print(f"{graph!r}")
    for dropped in graph.dropped:
        print(f"  dropped {dropped.name}: source={dropped.source_id}, target={dropped.target_id}")

    print("=" * 60)
    print("FILTERING")
    print("=" * 60)

    for relationship_type, entity_type in [(None, None), ("owns", None), (None, "machine")]:
        visible = apply_filter(graph, FilterConfig(relationship_type, entity_type))
        print(
            f"  relationship={relationship_type or 'all'}, entity={entity_type or 'all'}: "
            f"nodes={visible.node_ids}, edges={visible.edge_ids}"
        )

    print("=" * 60)
    print("LAYOUT")
    print("=" * 60)

    visible = apply_filter(graph)
    simulation = Simulation(
        visible.node_ids,
        [(edge.source_id, edge.target_id) for edge in visible.edges],
    )
    ticks = simulation.run_until_settled()
    print(f"Settled after {ticks} ticks: {simulation!r}")
    for node in visible.nodes:
        x, y = simulation.position(node.id)
        print(f"  {node.name:<10} ({x:7.1f}, {y:7.1f})")


async def run_live():
    """Load the graph from the API and print its statistics."""
    engine = GraphEngine(autostart=False)
    engine.on_error(lambda error: print(f"Failed to load data: {error}"))
    if await engine.initialize():
        engine.settle()
        for key, value in engine.get_stats().items():
            print(f"  {key}: {value}")


def main():
    """Run the basic usage example."""
    configure_logging()
    if "--live" in sys.argv:
        asyncio.run(run_live())
    else:
        run_offline()


if __name__ == "__main__":
    main()
