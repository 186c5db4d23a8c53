"""Pydantic models for the world graph and its activity log."""

from worldforge.models.activity import ActivityItem, ActivityType
from worldforge.models.formats import ExportFormat
from worldforge.models.world import (
    TIMESTAMP_FORMAT,
    ElementMention,
    ElementRelationship,
    ElementType,
    RelationshipType,
    World,
    WorldElement,
    format_timestamp,
    utc_now,
)

__all__ = [
    "TIMESTAMP_FORMAT",
    "ActivityItem",
    "ActivityType",
    "ElementMention",
    "ElementRelationship",
    "ElementType",
    "ExportFormat",
    "RelationshipType",
    "World",
    "WorldElement",
    "format_timestamp",
    "utc_now",
]
