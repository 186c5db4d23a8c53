"""The world graph: the only component allowed to mutate world data.

The graph enforces referential integrity the way foreign keys do in a
database:

- Elements belong to exactly one existing world, forever
- Relationships join two distinct elements of the same world
- Mentions point at existing elements of the same world and lie inside
  their owner's content
- Deleting a world or element cascades to everything that depends on it

Every mutating call runs as one transaction: a store savepoint plus a staged
activity buffer. On success the activity items are appended to the log and a
GraphEvent is published per item. On failure the store is rolled back and
nothing is logged or published. A single re-entrant lock serializes
mutations and snapshots.

Storage is delegated to a WorldStore backend (DictWorldStore by default).
"""

from __future__ import annotations

import itertools
import threading
from collections import Counter
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from worldforge.graph.activity import ActivityLog
from worldforge.graph.errors import (
    GraphCorruptionError,
    InvalidFieldError,
    LimitExceededError,
    NotFoundError,
)
from worldforge.graph.events import EventBus, GraphEvent
from worldforge.graph.mentions import prune_mentions, refresh_titles, scan_mentions
from worldforge.graph.relationships import validate_endpoints
from worldforge.graph.snapshot import GraphSnapshot, WorldSnapshot, element_sort_key
from worldforge.graph.store import DictWorldStore, WorldStore
from worldforge.models.activity import ActivityItem, ActivityType
from worldforge.models.world import (
    ElementRelationship,
    ElementType,
    RelationshipType,
    World,
    WorldElement,
    utc_now,
)
from worldforge.observability.logging import get_logger
from worldforge.policy import AccessPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence
    from datetime import datetime
    from uuid import UUID

log = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _replace(model: M, **changes: Any) -> M:
    """Return a validated copy of a frozen model with *changes* applied."""
    return type(model).model_validate({**model.model_dump(), **changes})


def _clean_title(field_name: str, value: str) -> str:
    title = value.strip()
    if not title:
        raise InvalidFieldError(field_name=field_name, reason="must not be empty")
    return title


def _tag_list(tags: Iterable[str]) -> list[str]:
    return [tags] if isinstance(tags, str) else list(tags)


def _parse_element_type(value: str | ElementType) -> ElementType:
    try:
        return ElementType.parse(value)
    except ValueError as e:
        raise InvalidFieldError(field_name="element type", reason=str(e)) from e


def _parse_relationship_type(value: str | RelationshipType) -> RelationshipType:
    try:
        return RelationshipType.parse(value)
    except ValueError as e:
        raise InvalidFieldError(field_name="relationship type", reason=str(e)) from e


class WorldGraph:
    """Worlds, their elements and relationships, and the activity log.

    Args:
        policy: Access policy supplying the world and element ceilings.
            Defaults to the free tier.
        store: Storage backend. Defaults to an empty DictWorldStore.
        activity: Activity log to append to. Defaults to capacity 100.
        events: Event channel to publish committed mutations on.
        clock: Source of timestamps.
    """

    def __init__(
        self,
        policy: AccessPolicy | None = None,
        *,
        store: WorldStore | None = None,
        activity: ActivityLog | None = None,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.policy = policy or AccessPolicy.free()
        self._store = store or DictWorldStore()
        self._activity = activity or ActivityLog()
        self._events = events or EventBus()
        self._clock = clock
        self._lock = threading.RLock()
        self._staged: list[ActivityItem] | None = None
        self._tx_ids = itertools.count(1)

    @property
    def activity(self) -> ActivityLog:
        return self._activity

    @property
    def events(self) -> EventBus:
        return self._events

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group mutations into one atomic unit.

        Transactions nest. Only the outermost one commits: its staged
        activity items are appended to the log and published as events once
        the block exits cleanly. Any exception rolls the store back to the
        state at entry of the failing level and drops its staged items.
        """
        with self._lock:
            outermost = self._staged is None
            if self._staged is None:
                self._staged = []
            mark = len(self._staged)
            name = f"tx_{next(self._tx_ids)}"
            self._store.savepoint(name)
            staged: list[ActivityItem] = []
            try:
                yield
            except BaseException:
                self._store.rollback_to(name)
                del self._staged[mark:]
                raise
            finally:
                self._store.release(name)
                if outermost:
                    staged, self._staged = self._staged, None

            if not outermost:
                return
            for item in staged:
                self._activity.append(item)

        for item in staged:
            self._events.publish(GraphEvent(activity=item))

    def _record(self, item: ActivityItem) -> None:
        if self._staged is None:
            raise RuntimeError("Activity can only be recorded inside a transaction")
        self._staged.append(item)

    # -------------------------------------------------------------------------
    # Lookup helpers
    # -------------------------------------------------------------------------

    def _require_world(self, world_id: UUID) -> World:
        world = self._store.get_world(world_id)
        if world is None:
            raise NotFoundError(
                kind="world",
                identity=str(world_id),
                available=[w.title for w in self._worlds()],
            )
        return world

    def _require_element(self, world_id: UUID, element_id: UUID) -> WorldElement:
        world = self._require_world(world_id)
        element = self._store.get_element(element_id)
        if element is None or element.world_id != world_id:
            raise NotFoundError(
                kind="element",
                identity=str(element_id),
                context=f"in world '{world.title}'",
                available=[e.title for e in self._elements(world_id)],
            )
        return element

    def _worlds(self) -> list[World]:
        return [w for wid in self._store.world_ids() if (w := self._store.get_world(wid))]

    def _elements(self, world_id: UUID) -> list[WorldElement]:
        return [
            e for eid in self._store.element_ids(world_id) if (e := self._store.get_element(eid))
        ]

    def _relationships(self, world_id: UUID) -> list[ElementRelationship]:
        return [
            r
            for rid in self._store.relationship_ids(world_id)
            if (r := self._store.get_relationship(rid))
        ]

    def _titles(self, world_id: UUID) -> dict[UUID, str]:
        return {e.id: e.title for e in self._elements(world_id)}

    def _touch_world(self, world_id: UUID, now: datetime) -> World:
        world = _replace(self._require_world(world_id), last_modified=now)
        self._store.put_world(world)
        return world

    def _relationship_details(self, relationship: ElementRelationship) -> str:
        titles = {}
        for element_id in (relationship.from_element_id, relationship.to_element_id):
            element = self._store.get_element(element_id)
            titles[element_id] = element.title if element else str(element_id)
        return (
            f"{titles[relationship.from_element_id]} {relationship.type.value} "
            f"{titles[relationship.to_element_id]}"
        )

    # -------------------------------------------------------------------------
    # Worlds
    # -------------------------------------------------------------------------

    def create_world(self, title: str, description: str = "") -> UUID:
        """Create an empty world.

        Raises:
            InvalidFieldError: If *title* is blank.
            LimitExceededError: If the policy's world ceiling is reached.
        """
        title = _clean_title("title", title)
        with self.transaction():
            count = len(self._store.world_ids())
            maximum = self.policy.max_worlds
            if maximum is not None and count >= maximum:
                raise LimitExceededError(limit="max_worlds", maximum=maximum, current=count)

            now = self._clock()
            world = World(title=title, description=description, created=now, last_modified=now)
            self._store.put_world(world)
            self._record(
                ActivityItem(
                    type=ActivityType.WORLD_CREATED,
                    world_id=world.id,
                    world_title=world.title,
                    timestamp=now,
                )
            )

        log.info("world_created", world_id=str(world.id), title=world.title)
        return world.id

    def update_world(
        self,
        world_id: UUID,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> UUID:
        """Update a world's title and/or description.

        Raises:
            NotFoundError: If the world does not exist.
            InvalidFieldError: If *title* is blank.
        """
        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = _clean_title("title", title)
        if description is not None:
            changes["description"] = description

        with self.transaction():
            world = self._require_world(world_id)
            now = self._clock()
            world = _replace(world, **changes, last_modified=now)
            self._store.put_world(world)
            self._record(
                ActivityItem(
                    type=ActivityType.WORLD_MODIFIED,
                    world_id=world.id,
                    world_title=world.title,
                    details=", ".join(sorted(changes)),
                    timestamp=now,
                )
            )

        log.info("world_updated", world_id=str(world_id), fields=sorted(changes))
        return world_id

    def delete_world(self, world_id: UUID) -> bool:
        """Delete a world with all of its elements and relationships.

        Returns:
            True if the world existed, False if there was nothing to delete.
        """
        with self.transaction():
            world = self._store.get_world(world_id)
            if world is None:
                return False
            element_count = len(self._store.element_ids(world_id))
            relationship_count = len(self._store.relationship_ids(world_id))
            self._store.delete_world(world_id)
            self._record(
                ActivityItem(
                    type=ActivityType.WORLD_DELETED,
                    world_id=world.id,
                    world_title=world.title,
                    details=(
                        f"{element_count} element(s), "
                        f"{relationship_count} relationship(s) removed"
                    ),
                    timestamp=self._clock(),
                )
            )

        log.info(
            "world_deleted",
            world_id=str(world_id),
            elements=element_count,
            relationships=relationship_count,
        )
        return True

    # -------------------------------------------------------------------------
    # Elements
    # -------------------------------------------------------------------------

    def create_element(
        self,
        world_id: UUID,
        element_type: str | ElementType,
        title: str,
        content: str = "",
        tags: Iterable[str] = (),
    ) -> UUID:
        """Create an element and index the mentions in its content.

        Other elements that already mention this title are not re-scanned;
        use :meth:`reindex_element` or :meth:`reindex_world` for that.

        Raises:
            NotFoundError: If the world does not exist.
            InvalidFieldError: If *title* is blank or the type is unknown.
            LimitExceededError: If the world's element ceiling is reached.
        """
        kind = _parse_element_type(element_type)
        title = _clean_title("title", title)

        with self.transaction():
            world = self._require_world(world_id)
            count = len(self._store.element_ids(world_id))
            maximum = self.policy.max_elements_per_world
            if maximum is not None and count >= maximum:
                raise LimitExceededError(
                    limit="max_elements_per_world", maximum=maximum, current=count
                )

            now = self._clock()
            element = WorldElement(
                world_id=world_id,
                type=kind,
                title=title,
                content=content,
                tags=_tag_list(tags),
                created=now,
                last_modified=now,
            )
            mentions = scan_mentions(content, self._titles(world_id), owner_id=element.id)
            element = _replace(element, mentions=mentions)
            self._store.put_element(element)
            world = self._touch_world(world_id, now)
            self._record(
                ActivityItem(
                    type=ActivityType.ELEMENT_CREATED,
                    world_id=world.id,
                    world_title=world.title,
                    element_id=element.id,
                    element_title=element.title,
                    element_type=element.type,
                    timestamp=now,
                )
            )

        log.info(
            "element_created",
            world_id=str(world_id),
            element_id=str(element.id),
            type=str(kind),
            mentions=len(mentions),
        )
        return element.id

    def update_element(
        self,
        world_id: UUID,
        element_id: UUID,
        *,
        element_type: str | ElementType | None = None,
        title: str | None = None,
        content: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> UUID:
        """Update an element's fields.

        A content change re-indexes this element's mentions. A title change
        refreshes the denormalized title on every mention of this element.

        Raises:
            NotFoundError: If the world or element does not exist.
            InvalidFieldError: If *title* is blank or the type is unknown.
        """
        changes: dict[str, Any] = {}
        if element_type is not None:
            changes["type"] = _parse_element_type(element_type)
        if title is not None:
            changes["title"] = _clean_title("title", title)
        if content is not None:
            changes["content"] = content
        if tags is not None:
            changes["tags"] = _tag_list(tags)

        with self.transaction():
            element = self._require_element(world_id, element_id)
            now = self._clock()

            updates = dict(changes)
            if content is not None and content != element.content:
                updates["mentions"] = scan_mentions(
                    content,
                    self._titles(world_id),
                    element.mentions,
                    owner_id=element_id,
                )
            updated = _replace(element, **updates, last_modified=now)
            self._store.put_element(updated)

            if updated.title != element.title:
                self._refresh_mention_titles(world_id, element_id, updated.title)

            world = self._touch_world(world_id, now)
            self._record(
                ActivityItem(
                    type=ActivityType.ELEMENT_MODIFIED,
                    world_id=world.id,
                    world_title=world.title,
                    element_id=updated.id,
                    element_title=updated.title,
                    element_type=updated.type,
                    details=", ".join(sorted(changes)),
                    timestamp=now,
                )
            )

        log.info("element_updated", element_id=str(element_id), fields=sorted(changes))
        return element_id

    def _refresh_mention_titles(self, world_id: UUID, element_id: UUID, title: str) -> int:
        refreshed = 0
        for other in self._elements(world_id):
            if any(m.element_id == element_id for m in other.mentions):
                mentions = refresh_titles(other.mentions, element_id, title)
                self._store.put_element(_replace(other, mentions=mentions))
                refreshed += 1
        return refreshed

    def delete_element(self, world_id: UUID, element_id: UUID) -> bool:
        """Delete an element, its relationships, and every mention of it.

        Returns:
            True if the element existed, False if there was nothing to delete.
        """
        with self.transaction():
            element = self._store.get_element(element_id)
            if element is None or element.world_id != world_id:
                return False

            removed = 0
            for relationship in self._relationships(world_id):
                if element_id in (relationship.from_element_id, relationship.to_element_id):
                    self._store.delete_relationship(relationship.id)
                    removed += 1

            pruned = 0
            for other in self._elements(world_id):
                if other.id == element_id:
                    continue
                mentions = prune_mentions(other.mentions, element_id)
                if len(mentions) != len(other.mentions):
                    self._store.put_element(_replace(other, mentions=mentions))
                    pruned += 1

            self._store.delete_element(element_id)
            now = self._clock()
            world = self._touch_world(world_id, now)
            self._record(
                ActivityItem(
                    type=ActivityType.ELEMENT_DELETED,
                    world_id=world.id,
                    world_title=world.title,
                    element_id=element.id,
                    element_title=element.title,
                    element_type=element.type,
                    details=f"{removed} relationship(s) removed" if removed else "",
                    timestamp=now,
                )
            )

        log.info(
            "element_deleted",
            element_id=str(element_id),
            relationships_removed=removed,
            mentions_pruned_in=pruned,
        )
        return True

    def reindex_element(self, world_id: UUID, element_id: UUID) -> bool:
        """Re-scan an element's content against the world's current titles.

        Returns:
            True if the mention list changed (and was saved), False otherwise.

        Raises:
            NotFoundError: If the world or element does not exist.
        """
        with self.transaction():
            element = self._require_element(world_id, element_id)
            mentions = scan_mentions(
                element.content,
                self._titles(world_id),
                element.mentions,
                owner_id=element_id,
            )
            if mentions == element.mentions:
                return False

            now = self._clock()
            self._store.put_element(_replace(element, mentions=mentions, last_modified=now))
            world = self._touch_world(world_id, now)
            self._record(
                ActivityItem(
                    type=ActivityType.ELEMENT_MODIFIED,
                    world_id=world.id,
                    world_title=world.title,
                    element_id=element.id,
                    element_title=element.title,
                    element_type=element.type,
                    details="mentions",
                    timestamp=now,
                )
            )

        log.debug("element_reindexed", element_id=str(element_id), mentions=len(mentions))
        return True

    def reindex_world(self, world_id: UUID) -> int:
        """Re-index every element of a world.

        Returns:
            Number of elements whose mentions changed.
        """
        with self.transaction():
            self._require_world(world_id)
            return sum(
                1
                for element_id in self._store.element_ids(world_id)
                if self.reindex_element(world_id, element_id)
            )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def create_relationship(
        self,
        world_id: UUID,
        from_id: UUID,
        to_id: UUID,
        relationship_type: str | RelationshipType,
        description: str = "",
        bidirectional: bool = False,
    ) -> UUID:
        """Relate two elements of the same world.

        Raises:
            NotFoundError: If the world or an endpoint does not exist.
            InvalidRelationshipError: If the endpoints are the same element or
                an endpoint belongs to another world.
            InvalidFieldError: If the relationship type is unknown.
        """
        kind = _parse_relationship_type(relationship_type)

        with self.transaction():
            self._require_world(world_id)
            source, target = validate_endpoints(world_id, from_id, to_id, self._store.get_element)
            now = self._clock()
            relationship = ElementRelationship(
                from_element_id=from_id,
                to_element_id=to_id,
                type=kind,
                description=description,
                created=now,
                bidirectional=bidirectional,
            )
            self._store.put_relationship(world_id, relationship)
            world = self._touch_world(world_id, now)
            self._record(
                ActivityItem(
                    type=ActivityType.RELATIONSHIP_CREATED,
                    world_id=world.id,
                    world_title=world.title,
                    relationship_id=relationship.id,
                    details=f"{source.title} {kind.value} {target.title}",
                    timestamp=now,
                )
            )

        log.info(
            "relationship_created",
            relationship_id=str(relationship.id),
            type=str(kind),
            from_id=str(from_id),
            to_id=str(to_id),
        )
        return relationship.id

    def delete_relationship(self, world_id: UUID, relationship_id: UUID) -> bool:
        """Delete a relationship.

        Returns:
            True if the relationship existed, False if there was nothing to delete.
        """
        with self.transaction():
            if self._store.relationship_world(relationship_id) != world_id:
                return False
            relationship = self._store.get_relationship(relationship_id)
            if relationship is None:
                return False

            details = self._relationship_details(relationship)
            self._store.delete_relationship(relationship_id)
            now = self._clock()
            world = self._touch_world(world_id, now)
            self._record(
                ActivityItem(
                    type=ActivityType.RELATIONSHIP_DELETED,
                    world_id=world.id,
                    world_title=world.title,
                    relationship_id=relationship_id,
                    details=details,
                    timestamp=now,
                )
            )

        log.info("relationship_deleted", relationship_id=str(relationship_id))
        return True

    # -------------------------------------------------------------------------
    # Restore paths
    # -------------------------------------------------------------------------

    def restore_world(
        self,
        world: World,
        elements: Sequence[WorldElement] = (),
        relationships: Sequence[ElementRelationship] = (),
    ) -> None:
        """Insert a complete world with its identities and timestamps intact.

        This is the import path. It applies the same ceilings and integrity
        checks as interactive edits and records one activity item per
        created world, element, and relationship.

        Raises:
            LimitExceededError: If a ceiling would be exceeded.
            InvalidFieldError: If an identity already exists.
            NotFoundError: If a relationship endpoint or mention target is missing.
            InvalidRelationshipError: If a relationship endpoint is invalid.
        """
        with self.transaction():
            if self._store.get_world(world.id) is not None:
                raise InvalidFieldError(field_name="world id", reason=f"{world.id} already exists")

            count = len(self._store.world_ids())
            maximum = self.policy.max_worlds
            if maximum is not None and count >= maximum:
                raise LimitExceededError(limit="max_worlds", maximum=maximum, current=count)
            per_world = self.policy.max_elements_per_world
            if per_world is not None and len(elements) > per_world:
                raise LimitExceededError(
                    limit="max_elements_per_world", maximum=per_world, current=len(elements)
                )

            now = self._clock()
            self._store.put_world(world)
            self._record(
                ActivityItem(
                    type=ActivityType.WORLD_CREATED,
                    world_id=world.id,
                    world_title=world.title,
                    details="imported",
                    timestamp=now,
                )
            )

            for element in elements:
                if self._store.get_element(element.id) is not None:
                    raise InvalidFieldError(
                        field_name="element id", reason=f"{element.id} already exists"
                    )
                self._store.put_element(_replace(element, world_id=world.id))
                self._record(
                    ActivityItem(
                        type=ActivityType.ELEMENT_CREATED,
                        world_id=world.id,
                        world_title=world.title,
                        element_id=element.id,
                        element_title=element.title,
                        element_type=element.type,
                        details="imported",
                        timestamp=now,
                    )
                )

            for element in elements:
                for mention in element.mentions:
                    target = self._store.get_element(mention.element_id)
                    if target is None or target.world_id != world.id or target.id == element.id:
                        raise NotFoundError(
                            kind="element",
                            identity=str(mention.element_id),
                            context=f"mentioned by '{element.title}'",
                        )

            for relationship in relationships:
                if self._store.get_relationship(relationship.id) is not None:
                    raise InvalidFieldError(
                        field_name="relationship id", reason=f"{relationship.id} already exists"
                    )
                validate_endpoints(
                    world.id,
                    relationship.from_element_id,
                    relationship.to_element_id,
                    self._store.get_element,
                )
                self._store.put_relationship(world.id, relationship)
                self._record(
                    ActivityItem(
                        type=ActivityType.RELATIONSHIP_CREATED,
                        world_id=world.id,
                        world_title=world.title,
                        relationship_id=relationship.id,
                        details=self._relationship_details(relationship),
                        timestamp=now,
                    )
                )

        log.info(
            "world_restored",
            world_id=str(world.id),
            elements=len(elements),
            relationships=len(relationships),
        )

    def load(self, snapshot: GraphSnapshot) -> None:
        """Replace the whole graph and activity log with *snapshot*.

        This is the persistence path: nothing is logged or published. The
        loaded state is checked against every invariant first.

        Raises:
            GraphCorruptionError: If the loaded state violates an invariant.
        """
        with self._lock:
            name = f"load_{next(self._tx_ids)}"
            self._store.savepoint(name)
            try:
                self._store.clear()
                for world_snapshot in snapshot.worlds:
                    self._store.put_world(world_snapshot.world)
                    for element in world_snapshot.elements:
                        if element.world_id != world_snapshot.id:
                            raise GraphCorruptionError(
                                violations=[
                                    f"Element {element.id} listed in world {world_snapshot.id} "
                                    f"but owned by {element.world_id}"
                                ]
                            )
                        self._store.put_element(element)
                    for relationship in world_snapshot.relationships:
                        self._store.put_relationship(world_snapshot.id, relationship)
                violations = self.validate_invariants()
                if violations:
                    raise GraphCorruptionError(violations=violations)
            except Exception:
                self._store.rollback_to(name)
                raise
            finally:
                self._store.release(name)
            self._activity.replace(reversed(snapshot.activity))

        log.info(
            "graph_loaded",
            worlds=len(snapshot.worlds),
            activity=len(snapshot.activity),
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_world(self, world_id: UUID) -> World:
        with self._lock:
            return self._require_world(world_id)

    def has_world(self, world_id: UUID) -> bool:
        with self._lock:
            return self._store.get_world(world_id) is not None

    def list_worlds(self) -> list[World]:
        """Return all worlds, most recently modified first."""
        with self._lock:
            return sorted(self._worlds(), key=lambda w: w.last_modified, reverse=True)

    def world_count(self) -> int:
        with self._lock:
            return len(self._store.world_ids())

    def get_element(self, world_id: UUID, element_id: UUID) -> WorldElement:
        with self._lock:
            return self._require_element(world_id, element_id)

    def find_element(self, element_id: UUID) -> WorldElement | None:
        """Look an element up by id alone, or None if it does not exist."""
        with self._lock:
            return self._store.get_element(element_id)

    def has_relationship(self, relationship_id: UUID) -> bool:
        with self._lock:
            return self._store.get_relationship(relationship_id) is not None

    def list_elements(
        self,
        world_id: UUID,
        element_type: str | ElementType | None = None,
    ) -> list[WorldElement]:
        """Return a world's elements sorted by title, optionally of one type."""
        kind = _parse_element_type(element_type) if element_type is not None else None
        with self._lock:
            self._require_world(world_id)
            elements = [e for e in self._elements(world_id) if kind is None or e.type == kind]
        return sorted(elements, key=element_sort_key)

    def get_relationship(self, world_id: UUID, relationship_id: UUID) -> ElementRelationship:
        with self._lock:
            world = self._require_world(world_id)
            relationship = self._store.get_relationship(relationship_id)
            if relationship is None or self._store.relationship_world(relationship_id) != world_id:
                raise NotFoundError(
                    kind="relationship",
                    identity=str(relationship_id),
                    context=f"in world '{world.title}'",
                )
            return relationship

    def list_relationships(self, world_id: UUID) -> list[ElementRelationship]:
        """Return a world's relationships in insertion order."""
        with self._lock:
            self._require_world(world_id)
            return self._relationships(world_id)

    def relationships_for(self, world_id: UUID, element_id: UUID) -> list[ElementRelationship]:
        """Return every relationship with *element_id* as source or target."""
        with self._lock:
            self._require_element(world_id, element_id)
            return [
                r
                for r in self._relationships(world_id)
                if element_id in (r.from_element_id, r.to_element_id)
            ]

    def element_counts(self, world_id: UUID) -> dict[ElementType, int]:
        """Count a world's elements per type (types with no elements are omitted)."""
        with self._lock:
            self._require_world(world_id)
            return dict(Counter(e.type for e in self._elements(world_id)))

    def mention_candidates(
        self,
        world_id: UUID,
        query: str,
        exclude: UUID | None = None,
        limit: int = 5,
    ) -> list[WorldElement]:
        """Elements whose title contains *query*, for a mention picker.

        Args:
            world_id: World to search.
            query: Partial title; matched case-insensitively anywhere in the title.
            exclude: Element to leave out (usually the one being edited).
            limit: Maximum number of candidates.
        """
        needle = query.strip().casefold()
        matches = [
            e
            for e in self.list_elements(world_id)
            if e.id != exclude and needle in e.title.casefold()
        ]
        return matches[:limit]

    def snapshot(self, world_ids: Iterable[UUID] | None = None) -> GraphSnapshot:
        """Take a consistent point-in-time view of some or all worlds.

        When *world_ids* is given, only those worlds (in creation order) and
        their activity items are included.

        Raises:
            NotFoundError: If a requested world does not exist.
        """
        with self._lock:
            if world_ids is None:
                selected = self._store.world_ids()
            else:
                wanted = set(world_ids)
                for world_id in wanted:
                    self._require_world(world_id)
                selected = [wid for wid in self._store.world_ids() if wid in wanted]

            worlds = tuple(
                WorldSnapshot(
                    world=self._require_world(world_id),
                    elements=tuple(sorted(self._elements(world_id), key=element_sort_key)),
                    relationships=tuple(self._relationships(world_id)),
                )
                for world_id in selected
            )
            activity = self._activity.items()
            if world_ids is not None:
                kept = set(selected)
                activity = [item for item in activity if item.world_id in kept]
            return GraphSnapshot(taken_at=self._clock(), worlds=worlds, activity=tuple(activity))

    def validate_invariants(self) -> list[str]:
        """Check every integrity rule against the stored state.

        Returns:
            One message per violation; empty when the graph is consistent.
        """
        violations: list[str] = []
        with self._lock:
            for world in self._worlds():
                elements = {e.id: e for e in self._elements(world.id)}
                for element in elements.values():
                    if element.world_id != world.id:
                        violations.append(
                            f"Element {element.id} listed in world {world.id} "
                            f"but owned by {element.world_id}"
                        )
                    for mention in element.mentions:
                        if mention.element_id not in elements:
                            violations.append(
                                f"Mention {mention.id} in element {element.id} targets "
                                f"missing element {mention.element_id}"
                            )
                        elif mention.element_id == element.id:
                            violations.append(f"Element {element.id} mentions itself")
                        if mention.end_index > len(element.content):
                            violations.append(
                                f"Mention {mention.id} in element {element.id} "
                                "extends past the end of its content"
                            )
                for relationship in self._relationships(world.id):
                    for endpoint in (relationship.from_element_id, relationship.to_element_id):
                        if endpoint not in elements:
                            violations.append(
                                f"Relationship {relationship.id} references element "
                                f"{endpoint} outside world {world.id}"
                            )
                    if relationship.from_element_id == relationship.to_element_id:
                        violations.append(f"Relationship {relationship.id} is self-referential")
        return violations
