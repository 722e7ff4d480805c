"""Presentation tables for relationship and entity types.

The tables are plain data injected into the engine, renderer and interaction
layer, so a page can swap colors or labels without touching engine logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from relgraph.models import EntityType, RelationshipType, Strength

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class RelationshipStyle:
    """Display attributes of one relationship type."""

    label: str
    strength: Strength
    color: str


# Relationship type -> display attributes
# Strong relationships are drawn solid and thick, weak ones dashed and thin
RELATIONSHIP_STYLES: Mapping[str, RelationshipStyle] = {
    RelationshipType.CONTAINS.value: RelationshipStyle("Contains", Strength.STRONG, "#e74c3c"),
    RelationshipType.COMPOSES.value: RelationshipStyle("Composes", Strength.STRONG, "#e74c3c"),
    RelationshipType.OWNS.value: RelationshipStyle("Owns", Strength.STRONG, "#e74c3c"),
    RelationshipType.RELATES_TO.value: RelationshipStyle("Relates to", Strength.WEAK, "#3498db"),
    RelationshipType.DEPENDS_ON.value: RelationshipStyle("Depends on", Strength.WEAK, "#3498db"),
    RelationshipType.INFLUENCES.value: RelationshipStyle("Influences", Strength.WEAK, "#3498db"),
    RelationshipType.COLLABORATES.value: RelationshipStyle("Collaborates", Strength.WEAK, "#3498db"),
}

# Entity type -> node fill color
ENTITY_COLORS: Mapping[str, str] = {
    EntityType.PERSON.value: "#e74c3c",
    EntityType.MACHINE.value: "#f39c12",
    EntityType.OBJECT.value: "#9b59b6",
}

DEFAULT_LINK_COLOR = "#999"
DEFAULT_NODE_COLOR = "#95a5a6"


def _tag(value: str) -> str:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class StyleTable:
    """Lookup wrapper around the style tables with fallbacks for unknown types."""

    relationship_styles: Mapping[str, RelationshipStyle] = field(
        default_factory=lambda: dict(RELATIONSHIP_STYLES)
    )
    entity_colors: Mapping[str, str] = field(default_factory=lambda: dict(ENTITY_COLORS))
    default_link_color: str = DEFAULT_LINK_COLOR
    default_node_color: str = DEFAULT_NODE_COLOR

    def relationship_style(self, relationship_type: str) -> RelationshipStyle:
        """Get the style of a relationship type.

        Unknown types are rendered as weak links with the default color and
        the raw type as label.

        Args:
            relationship_type: Relationship type tag

        Returns:
            Style for the type
        """
        relationship_type = _tag(relationship_type)
        style = self.relationship_styles.get(relationship_type)
        if style is None:
            return RelationshipStyle(relationship_type, Strength.WEAK, self.default_link_color)
        return style

    def strength(self, relationship_type: str) -> Strength:
        return self.relationship_style(relationship_type).strength

    def entity_color(self, entity_type: str) -> str:
        return self.entity_colors.get(_tag(entity_type), self.default_node_color)
