"""Export document model and Exporter protocol.

Defines the intermediate representation (ExportDocument) that every exporter
consumes, plus the Exporter protocol they must implement. ExportDocument is
also the canonical wire schema: the JSON exporter dumps it as-is and the
import engine validates incoming documents against it.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID  # noqa: TC003 - pydantic resolves field types at runtime

from pydantic import Field

from worldforge.models.activity import ActivityItem
from worldforge.models.world import (
    ElementRelationship,
    Timestamp,
    WireModel,
    World,
    WorldElement,
    utc_now,
)

CANONICAL_VERSION = "1.0.0"


class ExportWorld(WireModel):
    """A world with its elements (sorted by title) and relationships (in insertion order)."""

    id: UUID
    title: str
    description: str = ""
    created: Timestamp
    last_modified: Timestamp
    elements: tuple[WorldElement, ...] = ()
    relationships: tuple[ElementRelationship, ...] = ()

    def to_world(self) -> World:
        return World(
            id=self.id,
            title=self.title,
            description=self.description,
            created=self.created,
            last_modified=self.last_modified,
        )

    @property
    def titles(self) -> dict[UUID, str]:
        """Element titles by id."""
        return {e.id: e.title for e in self.elements}

    def relationships_for(self, element_id: UUID) -> list[ElementRelationship]:
        return [
            r
            for r in self.relationships
            if element_id in (r.from_element_id, r.to_element_id)
        ]


class ExportDocument(WireModel):
    """Everything an exporter renders, in canonical order."""

    export_date: Timestamp = Field(default_factory=utc_now)
    version: str = CANONICAL_VERSION
    worlds: tuple[ExportWorld, ...] = ()
    recent_activity: tuple[ActivityItem, ...] = ()

    @property
    def element_count(self) -> int:
        return sum(len(w.elements) for w in self.worlds)


class Exporter(Protocol):
    """Protocol for export format handlers."""

    format_name: str
    file_extension: str
    media_type: str

    def render(self, document: ExportDocument) -> bytes:
        """Render the document in this exporter's format.

        Args:
            document: Export data in canonical order.

        Returns:
            The encoded export.
        """
        ...
