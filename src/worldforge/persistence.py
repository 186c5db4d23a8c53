"""Saving and restoring the whole graph through a key/value blob store.

Two keys hold the complete state:

- ``worldforge.worlds``: a canonical document with every world and no activity
- ``worldforge.activity``: the activity log as a JSON array, newest first

Every save writes the complete state; there are no partial updates. Loading
goes through ``WorldGraph.load``, which checks every invariant and records no
activity.
"""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Protocol

from pydantic import TypeAdapter, ValidationError

from worldforge.export.canonical import decode, encode
from worldforge.export.context import build_export_document
from worldforge.graph.errors import DecodeFailureError
from worldforge.graph.snapshot import GraphSnapshot, WorldSnapshot
from worldforge.models.activity import ActivityItem
from worldforge.models.world import utc_now
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from worldforge.graph.events import GraphEvent
    from worldforge.graph.graph import WorldGraph

log = get_logger(__name__)

WORLDS_KEY = "worldforge.worlds"
ACTIVITY_KEY = "worldforge.activity"

_ACTIVITY_ADAPTER = TypeAdapter(list[ActivityItem])


class StateStore(Protocol):
    """Blob storage keyed by name."""

    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStateStore:
    """In-process StateStore, mainly for tests."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self._blobs.get(key)

    def put(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._blobs)


class FileStateStore:
    """StateStore keeping one ``<key>.json`` file per key in a directory.

    Each write goes to a temporary file first and is then renamed over the
    target, so a crash never leaves a half-written blob behind.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def put(self, key: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except Exception:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def save_graph(graph: WorldGraph, store: StateStore) -> None:
    """Write the complete graph state to *store*."""
    snapshot = graph.snapshot()
    document = build_export_document(snapshot, include_activity=False)
    store.put(WORLDS_KEY, encode(document))
    activity = _ACTIVITY_ADAPTER.dump_json(list(snapshot.activity), by_alias=True, indent=2)
    store.put(ACTIVITY_KEY, activity)
    log.debug(
        "graph_saved",
        worlds=len(snapshot.worlds),
        elements=snapshot.element_count,
        activity=len(snapshot.activity),
    )


def _decode_activity(data: bytes) -> list[ActivityItem]:
    try:
        return _ACTIVITY_ADAPTER.validate_json(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise DecodeFailureError(reason=f"activity log: {first['msg']}", location=location) from e


def load_graph(graph: WorldGraph, store: StateStore) -> bool:
    """Replace *graph*'s contents with the state held in *store*.

    Returns:
        False if the store holds no saved state (the graph is left as is).

    Raises:
        DecodeFailureError: If a stored blob cannot be decoded.
        GraphCorruptionError: If the decoded state violates an invariant.
    """
    worlds_blob = store.get(WORLDS_KEY)
    activity_blob = store.get(ACTIVITY_KEY)
    if worlds_blob is None and activity_blob is None:
        return False

    worlds: tuple[WorldSnapshot, ...] = ()
    taken_at = None
    if worlds_blob is not None:
        document = decode(worlds_blob)
        taken_at = document.export_date
        worlds = tuple(
            WorldSnapshot(
                world=w.to_world(),
                elements=w.elements,
                relationships=w.relationships,
            )
            for w in document.worlds
        )
    activity = _decode_activity(activity_blob) if activity_blob is not None else []

    snapshot = GraphSnapshot(
        taken_at=taken_at or utc_now(),
        worlds=worlds,
        activity=tuple(activity),
    )
    graph.load(snapshot)
    log.debug("graph_restored", worlds=len(worlds), activity=len(activity))
    return True


class AutoSaver:
    """Save the graph after every committed mutation.

    Subscribes to the graph's event channel. Saving is synchronous, so a
    storage failure propagates to the event bus (which logs it) rather than
    being lost.
    """

    def __init__(self, graph: WorldGraph, store: StateStore) -> None:
        self.graph = graph
        self.store = store
        self.saves = 0
        self._unsubscribe: Callable[[], None] | None = None

    def start(self) -> AutoSaver:
        if self._unsubscribe is None:
            self._unsubscribe = self.graph.events.subscribe(self._on_event)
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_event(self, event: GraphEvent) -> None:
        save_graph(self.graph, self.store)
        self.saves += 1
        log.debug("autosave", kind=event.kind.value, saves=self.saves)

