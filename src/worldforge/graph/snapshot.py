"""Point-in-time, read-only views of the world graph.

A snapshot is taken under the graph lock and holds only frozen models, so it
never observes a mutation that starts after it was taken. Exporters, search,
and persistence all read snapshots rather than the live graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from worldforge.models.activity import ActivityItem
    from worldforge.models.world import ElementRelationship, World, WorldElement


def element_sort_key(element: WorldElement) -> tuple[str, str, str]:
    """Order elements by title, case-insensitively, with stable tie-breaks."""
    return (element.title.casefold(), element.title, str(element.id))


@dataclass(frozen=True)
class WorldSnapshot:
    """One world with its elements (by title) and relationships (in insertion order)."""

    world: World
    elements: tuple[WorldElement, ...] = ()
    relationships: tuple[ElementRelationship, ...] = ()

    @property
    def id(self) -> UUID:
        return self.world.id

    @property
    def titles(self) -> dict[UUID, str]:
        """Element titles by id."""
        return {e.id: e.title for e in self.elements}

    def element(self, element_id: UUID) -> WorldElement | None:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def relationships_for(self, element_id: UUID) -> list[ElementRelationship]:
        return [
            r
            for r in self.relationships
            if element_id in (r.from_element_id, r.to_element_id)
        ]


@dataclass(frozen=True)
class GraphSnapshot:
    """Worlds in creation order plus the activity log, newest first."""

    taken_at: datetime
    worlds: tuple[WorldSnapshot, ...] = ()
    activity: tuple[ActivityItem, ...] = ()

    def world(self, world_id: UUID) -> WorldSnapshot | None:
        for snapshot in self.worlds:
            if snapshot.id == world_id:
                return snapshot
        return None

    @property
    def element_count(self) -> int:
        return sum(len(w.elements) for w in self.worlds)

    @property
    def relationship_count(self) -> int:
        return sum(len(w.relationships) for w in self.worlds)
