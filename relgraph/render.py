"""Plotly rendering of the visible subgraph.

Strong relationships are drawn as thick solid lines, weak ones as thin dashed
lines; nodes are colored by entity type. Node ids travel in ``customdata`` so
a page can map plot selections back to the interaction layer.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Protocol

import networkx as nx
import plotly.graph_objects as go

from relgraph.models import Strength
from relgraph.styles import StyleTable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from relgraph.filters import VisibleSubgraph
    from relgraph.models import EntityId

NODE_MARKER_SIZE = 30
LINK_WIDTHS = {Strength.STRONG: 3, Strength.WEAK: 1}
LINK_DASHES = {Strength.STRONG: "solid", Strength.WEAK: "dash"}


class RenderSurface(Protocol):
    """Anything the engine can draw frames on."""

    def draw(self, visible: VisibleSubgraph, positions: Mapping[EntityId, tuple[float, float]]) -> None: ...

    def clear(self) -> None: ...


def to_networkx(visible: VisibleSubgraph, positions: Mapping[EntityId, tuple[float, float]]) -> nx.MultiDiGraph:
    """Build a networkx graph carrying entity data and positions.

    Nodes without a known position are left out together with their links.
    """
    G = nx.MultiDiGraph()
    for node in visible.nodes:
        if node.id not in positions:
            continue
        G.add_node(node.id, entity=node, pos=positions[node.id])
    for edge in visible.edges:
        if edge.source_id in G and edge.target_id in G:
            G.add_edge(edge.source_id, edge.target_id, key=edge.id, relationship=edge)
    return G


def build_figure(
    visible: VisibleSubgraph,
    positions: Mapping[EntityId, tuple[float, float]],
    styles: StyleTable | None = None,
    width: float = 800,
    height: float = 600,
    show_link_labels: bool = True,
) -> go.Figure:
    """Draw the visible subgraph at the given positions.

    Args:
        visible: Filtered graph to draw
        positions: Node positions by ID
        styles: Style tables (defaults if None)
        width: Figure width in pixels
        height: Figure height in pixels
        show_link_labels: Draw the relationship type label at link midpoints

    Returns:
        Plotly figure with one line trace per relationship type and one node trace
    """
    styles = styles or StyleTable()
    G = to_networkx(visible, positions)
    fig = go.Figure()

    # One trace per relationship type, since a trace has a single line style
    segments: dict[str, tuple[list, list]] = defaultdict(lambda: ([], []))
    label_x, label_y, label_text = [], [], []
    for source, target, data in G.edges(data=True):
        edge = data["relationship"]
        x0, y0 = G.nodes[source]["pos"]
        x1, y1 = G.nodes[target]["pos"]
        xs, ys = segments[edge.type]
        xs.extend([x0, x1, None])
        ys.extend([y0, y1, None])
        label_x.append((x0 + x1) / 2)
        label_y.append((y0 + y1) / 2)
        label_text.append(styles.relationship_style(edge.type).label)

    for relationship_type, (xs, ys) in segments.items():
        style = styles.relationship_style(relationship_type)
        fig.add_trace(go.Scatter(
            x=xs, y=ys,
            mode="lines",
            line=dict(color=style.color, width=LINK_WIDTHS[style.strength], dash=LINK_DASHES[style.strength]),
            hoverinfo="none",
            name=style.label,
        ))

    if show_link_labels and label_text:
        fig.add_trace(go.Scatter(
            x=label_x, y=label_y,
            mode="text",
            text=label_text,
            textposition="top center",
            textfont=dict(size=9, color="#555"),
            hoverinfo="none",
            showlegend=False,
            name="Link labels",
        ))

    node_x, node_y, node_text, node_hover, node_colors, node_ids = [], [], [], [], [], []
    for node_id, data in G.nodes(data=True):
        entity = data["entity"]
        x, y = data["pos"]
        node_x.append(x)
        node_y.append(y)
        node_ids.append(node_id)
        node_text.append(entity.name)
        node_colors.append(styles.entity_color(entity.type))
        node_hover.append(
            f"<b>{entity.name}</b><br>"
            f"Type: {entity.type}<br>"
            f"{entity.description or 'No description'}"
        )

    fig.add_trace(go.Scatter(
        x=node_x, y=node_y,
        mode="markers+text",
        marker=dict(size=NODE_MARKER_SIZE, color=node_colors, line=dict(width=2, color="white")),
        text=node_text,
        textposition="bottom center",
        hovertext=node_hover,
        hovertemplate="%{hovertext}<extra></extra>",
        customdata=node_ids,
        name="Entities",
    ))

    # y grows downward in screen coordinates
    fig.update_layout(
        showlegend=False,
        xaxis=dict(showgrid=False, showticklabels=False, visible=False, range=[0, width]),
        yaxis=dict(showgrid=False, showticklabels=False, visible=False, range=[height, 0]),
        plot_bgcolor="white",
        margin=dict(l=20, r=20, b=20, t=20),
        width=width,
        height=height,
        hovermode="closest",
        clickmode="event+select",
    )
    return fig


class PlotlySurface:
    """Rendering surface that keeps the latest frame and builds figures on demand."""

    def __init__(self, styles: StyleTable | None = None, width: float = 800, height: float = 600) -> None:
        self.styles = styles or StyleTable()
        self.width = width
        self.height = height
        self.visible: VisibleSubgraph | None = None
        self.positions: dict[EntityId, tuple[float, float]] = {}
        self.frames = 0

    def draw(self, visible: VisibleSubgraph, positions: Mapping[EntityId, tuple[float, float]]) -> None:
        self.visible = visible
        self.positions = dict(positions)
        self.frames += 1

    def clear(self) -> None:
        self.visible = None
        self.positions = {}

    def figure(self) -> go.Figure:
        """Build a figure of the latest frame (empty if nothing was drawn)."""
        if self.visible is None:
            fig = go.Figure()
            fig.update_layout(width=self.width, height=self.height)
            return fig
        return build_figure(self.visible, self.positions, self.styles, self.width, self.height)

    def __repr__(self) -> str:
        return f"PlotlySurface(frames={self.frames})"
