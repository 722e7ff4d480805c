"""Streamlit page for exploring the relationship graph.

Run with: streamlit run browser.py

Features:
- Filter by relationship type and entity type
- Refresh from the API and reset the layout
- Force-directed graph (Plotly)
- Entity and relationship detail panels
- Dropped relationship diagnostics
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

import pandas as pd
import streamlit as st
from relgraph import EngineConfig, EntityType, GraphEngine, RelationshipType, configure_logging
from relgraph.interaction import EdgeDetail
from relgraph.render import build_figure

configure_logging()

st.set_page_config(
    page_title="Relationship Graph",
    page_icon="🕸️",
    layout="wide",
)

st.title("🕸️ Relationship Graph")


@st.cache_resource
def get_engine():
    """Get cached engine instance, loaded once per session."""
    engine = GraphEngine(config=EngineConfig.from_env(), autostart=False)
    asyncio.run(engine.initialize())
    return engine


def get_entities_frame(engine):
    """Get the loaded entities as a table."""
    return pd.DataFrame(
        [
            {"id": str(node.id), "name": node.name, "type": node.type, "description": node.description}
            for node in engine.graph.nodes.values()
        ],
        columns=["id", "name", "type", "description"],
    )


def _point_id(point):
    """Extract the node id carried in a Plotly selection point."""
    customdata = point.get("customdata")
    if isinstance(customdata, list):
        return customdata[0] if customdata else None
    return customdata


def render_detail(detail):
    if isinstance(detail, EdgeDetail):
        st.markdown(f"**{detail.name}** ({detail.type_label})")
        st.write(f"Source: {detail.source_name}")
        st.write(f"Target: {detail.target_name}")
        st.write(f"Description: {detail.description}")
        st.write(f"Strength: {'Strong' if detail.strength == 'strong' else 'Weak'}")
        if detail.properties:
            st.json(detail.properties)
    else:
        st.markdown(f"**{detail.name}**")
        st.write(f"Type: {detail.type}")
        st.write(f"Description: {detail.description}")
        st.write(f"ID: {detail.id}")
        if detail.attributes:
            st.json(detail.attributes)


def main():
    """Main UI."""
    engine = get_engine()

    with st.sidebar:
        st.header("⚙️ Controls")

        relationship_choice = st.selectbox(
            "Relationship type",
            ["All"] + [t.value for t in RelationshipType],
        )
        entity_choice = st.selectbox(
            "Entity type",
            ["All"] + [t.value for t in EntityType],
        )

        col1, col2 = st.columns(2)
        with col1:
            if st.button("Refresh", type="primary"):
                with st.spinner("Loading graph..."):
                    asyncio.run(engine.refresh())
        with col2:
            if st.button("Reset layout"):
                engine.reset()

        st.divider()

        st.subheader("📊 Statistics")
        stats = engine.get_stats()
        st.metric("Entities", stats["total_nodes"])
        df = get_entities_frame(engine)
        if not df.empty:
            type_counts = df["type"].value_counts().to_dict()
            for entity_type, count in type_counts.items():
                st.metric(entity_type.capitalize() or "Untyped", count)
        st.metric("Relationships", stats["total_edges"])
        st.metric("Dropped", stats["dropped_edges"])

    if engine.last_error is not None:
        st.error(f"Failed to load data: {engine.last_error}")

    selected = (
        None if relationship_choice == "All" else relationship_choice,
        None if entity_choice == "All" else entity_choice,
    )
    if st.session_state.get("filter") != selected:
        engine.apply_filter(relationship_type=selected[0], entity_type=selected[1])
        st.session_state["filter"] = selected
    engine.settle()

    graph_col, detail_col = st.columns([3, 1])

    with graph_col:
        if not engine.visible.nodes:
            st.info("No entities match the current filters.")
        else:
            fig = build_figure(
                engine.visible,
                engine.simulation.positions(),
                engine.styles,
                width=engine.config.width,
                height=engine.config.height,
            )
            event = st.plotly_chart(fig, on_select="rerun", selection_mode="points", key="graph")
            points = event.selection.points if event else []
            for point in points:
                node_id = _point_id(point)
                if node_id is not None:
                    st.session_state["selected_node"] = node_id

    with detail_col:
        st.subheader("📖 Entity")
        node_id = st.session_state.get("selected_node")
        detail = engine.node_detail(node_id) if node_id is not None else None
        if detail:
            render_detail(detail)
        else:
            st.caption("Click a node to see its details")

        st.subheader("🔗 Relationships")
        for edge in engine.visible.edges:
            if node_id is not None and node_id not in (edge.source_id, edge.target_id):
                continue
            edge_detail = engine.edge_detail(edge.id)
            if edge_detail:
                with st.expander(f"{edge_detail.source_name} → {edge_detail.target_name}"):
                    render_detail(edge_detail)

    if engine.graph.dropped:
        with st.expander(f"⚠️ {len(engine.graph.dropped)} relationships reference missing entities"):
            dropped_df = pd.DataFrame(
                [
                    {
                        "Relationship": d.name,
                        "Source": str(d.source_id),
                        "Target": str(d.target_id),
                        "Missing": ", ".join(
                            side for side, missing in (("source", d.missing_source), ("target", d.missing_target)) if missing
                        ),
                    }
                    for d in engine.graph.dropped
                ]
            )
            st.dataframe(dropped_df, use_container_width=True)


if __name__ == "__main__":
    main()
