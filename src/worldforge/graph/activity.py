"""Bounded activity log.

The log is a ring buffer: once it holds ``capacity`` items, appending a new
item evicts the single oldest one. Insertion order is the total order used by
every "most recent first" query.

The log is observational only. Nothing reconstructs graph state from it, and
losing it does not affect the graph.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable
    from datetime import datetime
    from uuid import UUID

    from worldforge.models.activity import ActivityItem, ActivityType

DEFAULT_CAPACITY = 100


class ActivityLog:
    """Fixed-capacity, append-only record of graph mutations.

    Args:
        capacity: Maximum number of items kept. Must be at least 1.

    Raises:
        ValueError: If *capacity* is less than 1.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"Activity log capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._items: deque[ActivityItem] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: ActivityItem) -> None:
        """Record *item*, evicting the oldest item when full."""
        with self._lock:
            self._items.append(item)

    def items(self) -> list[ActivityItem]:
        """Return every item, newest first."""
        with self._lock:
            return list(reversed(self._items))

    def query(
        self,
        world_id: UUID | None = None,
        types: Collection[ActivityType] | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ActivityItem]:
        """Return items matching every supplied filter, newest first.

        Args:
            world_id: Only items about this world.
            types: Only items of these kinds. An empty collection matches nothing.
            since: Only items stamped at or after this time.
            limit: Return at most this many items.

        Returns:
            Matching items, most recent first.
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        results: list[ActivityItem] = []
        for item in self.items():
            if limit is not None and len(results) >= limit:
                break
            if world_id is not None and item.world_id != world_id:
                continue
            if types is not None and item.type not in types:
                continue
            if since is not None and item.timestamp < since:
                continue
            results.append(item)
        return results

    def merge(self, items: Iterable[ActivityItem]) -> int:
        """Add items not already present, keeping chronological order.

        Used when restoring an exported log. Existing items keep their
        insertion order; incoming items are sorted by timestamp and slotted in
        ahead of the first existing item stamped later than them (existing
        first on ties). The result is trimmed to capacity, oldest first.

        Returns:
            Number of incoming items that survived the merge.
        """
        with self._lock:
            seen = {item.id for item in self._items}
            incoming = list({item.id: item for item in items if item.id not in seen}.values())
            if not incoming:
                return 0
            incoming_ids = {item.id for item in incoming}

            incoming.sort(key=lambda item: item.timestamp)
            ordered: list[ActivityItem] = []
            pending = iter(incoming)
            nxt = next(pending, None)
            for current in self._items:
                while nxt is not None and nxt.timestamp < current.timestamp:
                    ordered.append(nxt)
                    nxt = next(pending, None)
                ordered.append(current)
            if nxt is not None:
                ordered.append(nxt)
                ordered.extend(pending)
            self._items = deque(ordered, maxlen=self._capacity)
            return sum(1 for item in self._items if item.id in incoming_ids)

    def replace(self, items: Iterable[ActivityItem]) -> None:
        """Replace the contents with *items* given oldest first."""
        with self._lock:
            self._items = deque(items, maxlen=self._capacity)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
