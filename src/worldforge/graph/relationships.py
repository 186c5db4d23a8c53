"""Relationship labels and endpoint validation.

Relationships are stored once, directed from source to target, and labelled
from the source side ("Hero Located In Castle"). Viewed from the target side
the same record reads with its inverse label ("Castle Contains Hero").
Symmetric kinds read the same from both sides.

Everything here is a pure function over relationship data; the store calls
:func:`validate_endpoints` before it writes a new relationship.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from worldforge.graph.errors import InvalidRelationshipError, NotFoundError
from worldforge.models.world import RelationshipType

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID

    from worldforge.models.world import ElementRelationship, WorldElement

INVERSE_LABELS: dict[RelationshipType, str] = {
    RelationshipType.RELATED_TO: "Related To",
    RelationshipType.CHILD_OF: "Parent Of",
    RelationshipType.PARENT_OF: "Child Of",
    RelationshipType.LOCATED_IN: "Contains",
    RelationshipType.MEMBER_OF: "Has Member",
    RelationshipType.OWNED_BY: "Owns",
    RelationshipType.ENEMY_OF: "Enemy Of",
    RelationshipType.ALLY_OF: "Ally Of",
    RelationshipType.CREATED_BY: "Created",
    RelationshipType.CONNECTED_TO: "Connected To",
}
"""Label shown when a relationship is viewed from its target side."""

SYMMETRIC_TYPES = frozenset(t for t, label in INVERSE_LABELS.items() if t.value == label)


def inverse_label(relationship_type: RelationshipType) -> str:
    """Return the label a relationship of this type shows from its target."""
    return INVERSE_LABELS[relationship_type]


def is_symmetric(relationship_type: RelationshipType) -> bool:
    return relationship_type in SYMMETRIC_TYPES


def label_for(relationship: ElementRelationship, viewer_id: UUID) -> str:
    """Return the label to display for *relationship* as seen by *viewer_id*.

    Args:
        relationship: The relationship being displayed.
        viewer_id: The element the relationship is viewed from.

    Returns:
        The stored type label from the source side, the inverse label from
        the target side.

    Raises:
        NotFoundError: If *viewer_id* is neither endpoint.
    """
    if viewer_id == relationship.from_element_id:
        return relationship.type.value
    if viewer_id == relationship.to_element_id:
        return inverse_label(relationship.type)
    raise NotFoundError(
        kind="element",
        identity=str(viewer_id),
        context=f"not an endpoint of relationship {relationship.id}",
    )


def other_endpoint(relationship: ElementRelationship, viewer_id: UUID) -> UUID:
    """Return the endpoint opposite *viewer_id*.

    Raises:
        NotFoundError: If *viewer_id* is neither endpoint.
    """
    if viewer_id == relationship.from_element_id:
        return relationship.to_element_id
    if viewer_id == relationship.to_element_id:
        return relationship.from_element_id
    raise NotFoundError(
        kind="element",
        identity=str(viewer_id),
        context=f"not an endpoint of relationship {relationship.id}",
    )


def describe(
    relationship: ElementRelationship,
    viewer_id: UUID,
    titles: Mapping[UUID, str],
) -> str:
    """Render ``"<label> → <other title>"`` from the viewer's side.

    Unknown endpoints render as their id.
    """
    other = other_endpoint(relationship, viewer_id)
    return f"{label_for(relationship, viewer_id)} → {titles.get(other, str(other))}"


def validate_endpoints(
    world_id: UUID,
    from_id: UUID,
    to_id: UUID,
    lookup: Callable[[UUID], WorldElement | None],
) -> tuple[WorldElement, WorldElement]:
    """Check that a new relationship joins two distinct elements of one world.

    Args:
        world_id: The world the relationship will belong to.
        from_id: Source element.
        to_id: Target element.
        lookup: Resolves an element id, returning None when absent.

    Returns:
        The resolved (source, target) elements.

    Raises:
        InvalidRelationshipError: If the endpoints are the same element or
            either belongs to another world.
        NotFoundError: If either endpoint does not exist.
    """
    if from_id == to_id:
        raise InvalidRelationshipError(
            reason="An element cannot be related to itself",
            from_id=str(from_id),
            to_id=str(to_id),
            world_id=str(world_id),
        )

    resolved: list[WorldElement] = []
    for role, element_id in (("source", from_id), ("target", to_id)):
        element = lookup(element_id)
        if element is None:
            raise NotFoundError(
                kind="element",
                identity=str(element_id),
                context=f"relationship {role}",
            )
        if element.world_id != world_id:
            raise InvalidRelationshipError(
                reason=f"The {role} element '{element.title}' belongs to another world",
                from_id=str(from_id),
                to_id=str(to_id),
                world_id=str(world_id),
            )
        resolved.append(element)

    return resolved[0], resolved[1]
