"""World graph storage and integrity.

The graph is the single source of truth for worlds, elements, relationships
and mentions. All mutations go through :class:`WorldGraph`.
"""

from worldforge.graph.activity import ActivityLog
from worldforge.graph.errors import (
    DecodeFailureError,
    FormatUnsupportedError,
    GraphCorruptionError,
    ImportConflictError,
    InvalidFieldError,
    InvalidRelationshipError,
    LimitExceededError,
    NotFoundError,
    ProviderNotAllowedError,
    WorldConflict,
    WorldGraphError,
)
from worldforge.graph.events import EventBus, GraphEvent
from worldforge.graph.graph import WorldGraph
from worldforge.graph.snapshot import GraphSnapshot, WorldSnapshot
from worldforge.graph.store import DictWorldStore, WorldStore

__all__ = [
    "ActivityLog",
    "DecodeFailureError",
    "DictWorldStore",
    "EventBus",
    "FormatUnsupportedError",
    "GraphCorruptionError",
    "GraphEvent",
    "GraphSnapshot",
    "ImportConflictError",
    "InvalidFieldError",
    "InvalidRelationshipError",
    "LimitExceededError",
    "NotFoundError",
    "ProviderNotAllowedError",
    "WorldConflict",
    "WorldGraph",
    "WorldGraphError",
    "WorldSnapshot",
    "WorldStore",
]
