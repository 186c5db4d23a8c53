"""Pydantic models for worlds and their graph content.

A World owns Elements (typed nodes) and Relationships (typed directed edges
between two Elements of the same World). Element content may carry Mentions:
spans of ``@Title`` text that point at another Element by id.

All models are frozen. The graph replaces a model wholesale on every change
(a re-validated copy), so a reference handed out to a reader can never
change underneath it.

Wire names are camelCase (``worldId``, ``lastModified``) to match the
canonical export format; Python attribute names stay snake_case.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the fixed-width sortable wire format."""
    return value.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _normalize_tags(value: Any) -> Any:
    if isinstance(value, str):
        value = [value]
    if isinstance(value, (list, tuple, set, frozenset)):
        cleaned = {str(tag).strip() for tag in value}
        return tuple(sorted(tag for tag in cleaned if tag))
    return value


Timestamp = Annotated[
    datetime,
    AfterValidator(_as_utc),
    PlainSerializer(format_timestamp, return_type=str, when_used="json"),
]
"""Aware UTC datetime serialized as ``YYYY-MM-DDTHH:MM:SS.ffffffZ``."""

TagSet = Annotated[tuple[str, ...], BeforeValidator(_normalize_tags)]
"""Unordered tag set, normalized to a sorted tuple of unique stripped strings."""


class WireModel(BaseModel):
    """Base for frozen models with camelCase wire names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ElementType(StrEnum):
    """Closed set of element kinds."""

    CHARACTER = "Character"
    LOCATION = "Location"
    EVENT = "Event"
    ORGANIZATION = "Organization"
    ITEM = "Item"
    CULTURE = "Culture"
    LANGUAGE = "Language"
    TIMELINE = "Timeline"
    PLOT = "Plot"
    CONCEPT = "Concept"
    CUSTOM = "Custom"

    @classmethod
    def parse(cls, value: str | ElementType) -> ElementType:
        """Resolve an element type by value or name, case-insensitively.

        Raises:
            ValueError: If *value* names no element type.
        """
        if isinstance(value, ElementType):
            return value
        key = value.strip().casefold()
        for member in cls:
            if key in (member.value.casefold(), member.name.casefold()):
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown element type '{value}'. Valid types: {valid}")


class RelationshipType(StrEnum):
    """Closed set of relationship kinds, labelled from the source side."""

    RELATED_TO = "Related To"
    CHILD_OF = "Child Of"
    PARENT_OF = "Parent Of"
    LOCATED_IN = "Located In"
    MEMBER_OF = "Member Of"
    OWNED_BY = "Owned By"
    ENEMY_OF = "Enemy Of"
    ALLY_OF = "Ally Of"
    CREATED_BY = "Created By"
    CONNECTED_TO = "Connected To"

    @classmethod
    def parse(cls, value: str | RelationshipType) -> RelationshipType:
        """Resolve a relationship type by value or name, case-insensitively.

        ``"located in"``, ``"Located In"`` and ``"LOCATED_IN"`` all resolve to
        :attr:`LOCATED_IN`.

        Raises:
            ValueError: If *value* names no relationship type.
        """
        if isinstance(value, RelationshipType):
            return value
        key = value.strip().casefold().replace("_", " ").replace("-", " ")
        for member in cls:
            if key == member.value.casefold():
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown relationship type '{value}'. Valid types: {valid}")


class ElementMention(WireModel):
    """An ``@Title`` span inside an element's content.

    Attributes:
        id: Mention identity, stable while the span keeps its target.
        element_id: The referenced element.
        element_title: Title of the referenced element at indexing time.
        start_index: Offset of the ``@`` in the owning element's content.
        length: Span length, ``@`` included.
    """

    id: UUID = Field(default_factory=uuid4)
    element_id: UUID
    element_title: str
    start_index: int = Field(ge=0)
    length: int = Field(ge=1)

    @property
    def end_index(self) -> int:
        return self.start_index + self.length


class World(WireModel):
    """Top-level container of a self-consistent fictional setting."""

    id: UUID = Field(default_factory=uuid4)
    title: str = Field(min_length=1)
    description: str = ""
    created: Timestamp = Field(default_factory=utc_now)
    last_modified: Timestamp = Field(default_factory=utc_now)


class WorldElement(WireModel):
    """A typed node in a world's graph."""

    id: UUID = Field(default_factory=uuid4)
    world_id: UUID
    type: ElementType
    title: str = Field(min_length=1)
    content: str = ""
    tags: TagSet = ()
    mentions: tuple[ElementMention, ...] = ()
    created: Timestamp = Field(default_factory=utc_now)
    last_modified: Timestamp = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _mentions_within_content(self) -> WorldElement:
        size = len(self.content)
        for mention in self.mentions:
            if mention.end_index > size:
                msg = (
                    f"Mention {mention.id} spans {mention.start_index}..{mention.end_index} "
                    f"outside content of length {size}"
                )
                raise ValueError(msg)
        return self


class ElementRelationship(WireModel):
    """A typed directed edge between two elements of one world.

    ``bidirectional`` is a display hint; no reverse record is created.
    """

    id: UUID = Field(default_factory=uuid4)
    from_element_id: UUID
    to_element_id: UUID
    type: RelationshipType
    description: str = ""
    created: Timestamp = Field(default_factory=utc_now)
    bidirectional: bool = False
