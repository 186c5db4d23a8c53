"""Activity log entries.

One ActivityItem is recorded for every create, update, or delete of a World,
Element, or Relationship. Items carry denormalized titles so the audit trail
still reads correctly after the entity they describe is gone.
"""

from __future__ import annotations

from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import Field

from worldforge.models.world import ElementType, Timestamp, WireModel, utc_now


class ActivityType(StrEnum):
    """Kinds of recorded mutations."""

    WORLD_CREATED = "World Created"
    WORLD_MODIFIED = "World Modified"
    WORLD_DELETED = "World Deleted"
    ELEMENT_CREATED = "Element Created"
    ELEMENT_MODIFIED = "Element Modified"
    ELEMENT_DELETED = "Element Deleted"
    RELATIONSHIP_CREATED = "Relationship Created"
    RELATIONSHIP_DELETED = "Relationship Deleted"

    @classmethod
    def parse(cls, value: str | ActivityType) -> ActivityType:
        """Resolve by value (``"World Created"``) or name (``world_created``).

        Raises:
            ValueError: If *value* names no activity type.
        """
        if isinstance(value, ActivityType):
            return value
        key = value.strip().casefold().replace("_", " ").replace("-", " ")
        for member in cls:
            if key == member.value.casefold():
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown activity type '{value}'. Valid types: {valid}")


class ActivityItem(WireModel):
    """Immutable audit-trail record of one graph mutation."""

    id: UUID = Field(default_factory=uuid4)
    type: ActivityType
    world_id: UUID
    world_title: str
    element_id: UUID | None = None
    element_title: str | None = None
    element_type: ElementType | None = None
    relationship_id: UUID | None = None
    details: str = ""
    timestamp: Timestamp = Field(default_factory=utc_now)

    def summary(self) -> str:
        """One-line human-readable description of the mutation."""
        kind = self.element_type.value.lower() if self.element_type else "element"
        match self.type:
            case ActivityType.WORLD_CREATED:
                text = f"Created world {self.world_title}"
            case ActivityType.WORLD_MODIFIED:
                text = f"Modified world {self.world_title}"
            case ActivityType.WORLD_DELETED:
                text = f"Deleted world {self.world_title}"
            case ActivityType.ELEMENT_CREATED:
                text = f"Created {kind} {self.element_title}"
            case ActivityType.ELEMENT_MODIFIED:
                text = f"Modified {kind} {self.element_title}"
            case ActivityType.ELEMENT_DELETED:
                text = f"Deleted {kind} {self.element_title}"
            case ActivityType.RELATIONSHIP_CREATED:
                text = f"Created relationship: {self.details}"
            case ActivityType.RELATIONSHIP_DELETED:
                text = f"Deleted relationship: {self.details}"
        return text
