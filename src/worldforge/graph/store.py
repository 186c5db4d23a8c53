"""World storage backend protocol and dict-based implementation.

The WorldStore protocol defines the low-level storage operations that
WorldGraph delegates to. Implementations handle raw CRUD over an
identity-indexed arena; WorldGraph provides the public API with validation,
cascades, mention indexing, and activity logging.

Entities never hold references to each other. Worlds list their elements and
relationships by id, relationships name their endpoints by id, and mentions
name their target by id, so any of them can be removed independently.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from worldforge.models.world import ElementRelationship, World, WorldElement


@runtime_checkable
class WorldStore(Protocol):
    """Storage backend protocol for WorldGraph.

    Methods raise no domain-specific errors. WorldGraph is responsible for
    existence checks and for translating misses into NotFoundError.
    """

    # -- Worlds ----------------------------------------------------------------

    def get_world(self, world_id: UUID) -> World | None:
        """Get a world by ID, or None if not found."""
        ...

    def put_world(self, world: World) -> None:
        """Insert or replace a world."""
        ...

    def delete_world(self, world_id: UUID) -> None:
        """Delete a world with every element and relationship it owns."""
        ...

    def world_ids(self) -> list[UUID]:
        """Return all world IDs in insertion order."""
        ...

    # -- Elements --------------------------------------------------------------

    def get_element(self, element_id: UUID) -> WorldElement | None:
        """Get an element by ID, or None if not found."""
        ...

    def put_element(self, element: WorldElement) -> None:
        """Insert or replace an element. Its world must exist."""
        ...

    def delete_element(self, element_id: UUID) -> None:
        """Delete an element. No cascade; caller handles relationships first."""
        ...

    def element_ids(self, world_id: UUID) -> list[UUID]:
        """Return the IDs of a world's elements in insertion order."""
        ...

    # -- Relationships ---------------------------------------------------------

    def get_relationship(self, relationship_id: UUID) -> ElementRelationship | None:
        """Get a relationship by ID, or None if not found."""
        ...

    def put_relationship(self, world_id: UUID, relationship: ElementRelationship) -> None:
        """Insert or replace a relationship owned by *world_id*."""
        ...

    def delete_relationship(self, relationship_id: UUID) -> None:
        """Delete a relationship by ID."""
        ...

    def relationship_ids(self, world_id: UUID) -> list[UUID]:
        """Return the IDs of a world's relationships in insertion order."""
        ...

    def relationship_world(self, relationship_id: UUID) -> UUID | None:
        """Return the owning world of a relationship, or None if unknown."""
        ...

    # -- Savepoints ------------------------------------------------------------

    def savepoint(self, name: str) -> None:
        """Create a named savepoint of the current state."""
        ...

    def rollback_to(self, name: str) -> None:
        """Rollback to a named savepoint."""
        ...

    def release(self, name: str) -> None:
        """Release (discard) a named savepoint."""
        ...

    def clear(self) -> None:
        """Remove every world, element, and relationship."""
        ...


class _State:
    """Identity-indexed arena plus per-world ordering."""

    __slots__ = (
        "element_order",
        "elements",
        "relationship_order",
        "relationship_owner",
        "relationships",
        "worlds",
    )

    def __init__(self) -> None:
        self.worlds: dict[UUID, World] = {}
        self.elements: dict[UUID, WorldElement] = {}
        self.relationships: dict[UUID, ElementRelationship] = {}
        self.relationship_owner: dict[UUID, UUID] = {}
        self.element_order: dict[UUID, list[UUID]] = {}
        self.relationship_order: dict[UUID, list[UUID]] = {}

    def copy(self) -> _State:
        # Models are frozen, so copying the containers is a full snapshot.
        clone = _State()
        clone.worlds = dict(self.worlds)
        clone.elements = dict(self.elements)
        clone.relationships = dict(self.relationships)
        clone.relationship_owner = dict(self.relationship_owner)
        clone.element_order = {k: list(v) for k, v in self.element_order.items()}
        clone.relationship_order = {k: list(v) for k, v in self.relationship_order.items()}
        return clone


class DictWorldStore:
    """In-memory dict-based world store.

    This is the default backend. Savepoints copy the containers; because
    every stored model is immutable, a rollback restores the exact objects
    that were present when the savepoint was taken.
    """

    def __init__(self) -> None:
        self._state = _State()
        self._savepoints: dict[str, _State] = {}

    # -- Worlds ----------------------------------------------------------------

    def get_world(self, world_id: UUID) -> World | None:
        return self._state.worlds.get(world_id)

    def put_world(self, world: World) -> None:
        state = self._state
        if world.id not in state.worlds:
            state.element_order[world.id] = []
            state.relationship_order[world.id] = []
        state.worlds[world.id] = world

    def delete_world(self, world_id: UUID) -> None:
        state = self._state
        for rid in state.relationship_order.pop(world_id, []):
            state.relationships.pop(rid, None)
            state.relationship_owner.pop(rid, None)
        for eid in state.element_order.pop(world_id, []):
            state.elements.pop(eid, None)
        del state.worlds[world_id]

    def world_ids(self) -> list[UUID]:
        return list(self._state.worlds)

    # -- Elements --------------------------------------------------------------

    def get_element(self, element_id: UUID) -> WorldElement | None:
        return self._state.elements.get(element_id)

    def put_element(self, element: WorldElement) -> None:
        state = self._state
        if element.id not in state.elements:
            state.element_order[element.world_id].append(element.id)
        state.elements[element.id] = element

    def delete_element(self, element_id: UUID) -> None:
        state = self._state
        element = state.elements.pop(element_id)
        state.element_order[element.world_id].remove(element_id)

    def element_ids(self, world_id: UUID) -> list[UUID]:
        return list(self._state.element_order.get(world_id, []))

    # -- Relationships ---------------------------------------------------------

    def get_relationship(self, relationship_id: UUID) -> ElementRelationship | None:
        return self._state.relationships.get(relationship_id)

    def put_relationship(self, world_id: UUID, relationship: ElementRelationship) -> None:
        state = self._state
        if relationship.id not in state.relationships:
            state.relationship_order[world_id].append(relationship.id)
            state.relationship_owner[relationship.id] = world_id
        state.relationships[relationship.id] = relationship

    def delete_relationship(self, relationship_id: UUID) -> None:
        state = self._state
        del state.relationships[relationship_id]
        world_id = state.relationship_owner.pop(relationship_id)
        state.relationship_order[world_id].remove(relationship_id)

    def relationship_ids(self, world_id: UUID) -> list[UUID]:
        return list(self._state.relationship_order.get(world_id, []))

    def relationship_world(self, relationship_id: UUID) -> UUID | None:
        return self._state.relationship_owner.get(relationship_id)

    # -- Savepoints (copy-based) -----------------------------------------------

    def savepoint(self, name: str) -> None:
        """Save a named snapshot of current state."""
        self._savepoints[name] = self._state.copy()

    def rollback_to(self, name: str) -> None:
        """Restore state from a named snapshot."""
        if name not in self._savepoints:
            raise ValueError(f"No savepoint named '{name}'")
        self._state = self._savepoints[name].copy()

    def release(self, name: str) -> None:
        """Discard a named snapshot."""
        self._savepoints.pop(name, None)

    def clear(self) -> None:
        self._state = _State()
