"""Change notification for the world graph.

WorldGraph publishes one GraphEvent per committed mutation, after the
mutation and its activity item are in place. Observers (auto-save, a UI)
subscribe here instead of watching graph fields.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from worldforge.models.activity import ActivityItem, ActivityType

log = get_logger(__name__)


@dataclass(frozen=True)
class GraphEvent:
    """A committed graph mutation.

    Attributes:
        activity: The activity item recorded for the mutation.
    """

    activity: ActivityItem

    @property
    def kind(self) -> ActivityType:
        return self.activity.type


class EventBus:
    """Synchronous publish/subscribe channel for graph events.

    Subscribers run on the publishing thread, in subscription order. A
    subscriber that raises is logged and the remaining subscribers still
    receive the event; the mutation that produced it is already committed.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[GraphEvent], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[GraphEvent], None]) -> Callable[[], None]:
        """Register *callback* for every event.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[GraphEvent], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event: GraphEvent) -> None:
        """Deliver *event* to every subscriber."""
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                log.exception(
                    "event_subscriber_failed",
                    kind=str(event.kind),
                    subscriber=getattr(callback, "__qualname__", repr(callback)),
                )

    def clear(self) -> None:
        """Remove all subscriptions."""
        with self._lock:
            self._subscribers.clear()
