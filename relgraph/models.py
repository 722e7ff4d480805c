"""Core entity and relationship representation for the relationship graph.

An Entity is a typed "thing" and a Relationship is a typed, directed edge
between two things. Both are immutable snapshots of the API records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

EntityId = Union[str, int]


class EntityType(str, Enum):
    """Closed set of entity types known to the filter and style tables."""

    PERSON = "person"
    MACHINE = "machine"
    OBJECT = "object"


class RelationshipType(str, Enum):
    """Closed set of relationship types.

    Each type has a fixed strength class:
    - Strong: contains, composes, owns
    - Weak: relates_to, depends_on, influences, collaborates
    """

    CONTAINS = "contains"
    COMPOSES = "composes"
    OWNS = "owns"
    RELATES_TO = "relates_to"
    DEPENDS_ON = "depends_on"
    INFLUENCES = "influences"
    COLLABORATES = "collaborates"


class Strength(str, Enum):
    """Strength classification of a relationship type."""

    STRONG = "strong"
    WEAK = "weak"


@dataclass(frozen=True)
class Entity:
    """A node of the relationship graph.

    Attributes:
        id: Stable unique identifier
        name: Display name
        type: Type tag (usually one of EntityType)
        description: Free-text description
        attributes: Opaque static metadata, display only
        features: Opaque dynamic features, display only
        extra: Any further API fields, passed through untouched
    """

    id: EntityId
    name: str = ""
    type: str = ""
    description: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    features: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Entity(id={self.id!r}, name={self.name!r}, type={self.type})"


@dataclass(frozen=True)
class Relationship:
    """A directed edge of the relationship graph.

    Attributes:
        id: Stable unique identifier
        source_id: ID of the source entity
        target_id: ID of the target entity
        type: Type tag (usually one of RelationshipType)
        name: Display name
        description: Free-text description
        properties: Open-ended key -> scalar mapping
        extra: Any further API fields, passed through untouched
    """

    id: EntityId
    source_id: EntityId
    target_id: EntityId
    type: str = ""
    name: str = ""
    description: str = ""
    properties: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"Relationship(id={self.id!r}, {self.source_id!r} -[{self.type}]-> "
            f"{self.target_id!r})"
        )
