"""Import canonical JSON exports back into a world graph.

The import is all-or-nothing:

1. Decode and schema-check the document (DecodeFailureError on any problem)
2. Check the document is internally consistent: every element belongs to
   the world it is listed under, every relationship endpoint and mention
   target is an element of the same world, and no identity repeats
3. Detect worlds that collide with existing data. Without a resolution the
   import stops with ImportConflictError listing every collision
4. Write every world through ``WorldGraph.restore_world`` inside a single
   transaction, so ceilings and integrity rules apply exactly as they do for
   interactive edits and any failure rolls back every write
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from worldforge.export.canonical import decode
from worldforge.export.engine import ExportEngine
from worldforge.graph.errors import DecodeFailureError, ImportConflictError, WorldConflict
from worldforge.models.formats import ExportFormat
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from worldforge.collaborators import FileSource
    from collections.abc import Iterable, Iterator

    from worldforge.export.base import ExportDocument, ExportWorld
    from worldforge.graph.graph import WorldGraph
    from worldforge.models.activity import ActivityItem

log = get_logger(__name__)

IMPORTED_SUFFIX = " (Imported)"


class ConflictResolution(StrEnum):
    """What to do with an incoming world that collides with existing data."""

    SKIP = "skip"
    RENAME = "rename"


@dataclass
class ImportResult:
    """Outcome of a successful import.

    Attributes:
        imported: Ids of the worlds written, as stored (new ids for renamed worlds).
        skipped: Ids of incoming worlds that were skipped.
        renamed: Incoming world id to the fresh id it was imported under.
        elements: Number of elements written.
        relationships: Number of relationships written.
        activity_restored: Number of exported activity items merged into the log.
    """

    imported: list[UUID] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
    renamed: dict[UUID, UUID] = field(default_factory=dict)
    elements: int = 0
    relationships: int = 0
    activity_restored: int = 0


def check_consistency(document: ExportDocument) -> None:
    """Verify cross-references inside a decoded document.

    Raises:
        DecodeFailureError: On the first inconsistency found.
    """
    seen: set[UUID] = set()

    def claim(identity: UUID, location: str) -> None:
        if identity in seen:
            raise DecodeFailureError(reason=f"duplicate id {identity}", location=location)
        seen.add(identity)

    for w, world in enumerate(document.worlds):
        claim(world.id, f"worlds[{w}].id")
        element_ids = {e.id for e in world.elements}

        for e, element in enumerate(world.elements):
            where = f"worlds[{w}].elements[{e}]"
            claim(element.id, f"{where}.id")
            if element.world_id != world.id:
                raise DecodeFailureError(
                    reason=f"element {element.id} belongs to world {element.world_id}",
                    location=f"{where}.worldId",
                )
            for m, mention in enumerate(element.mentions):
                if mention.element_id not in element_ids or mention.element_id == element.id:
                    raise DecodeFailureError(
                        reason=f"mention targets unknown element {mention.element_id}",
                        location=f"{where}.mentions[{m}]",
                    )

        for r, relationship in enumerate(world.relationships):
            where = f"worlds[{w}].relationships[{r}]"
            claim(relationship.id, f"{where}.id")
            endpoints = (relationship.from_element_id, relationship.to_element_id)
            if relationship.from_element_id == relationship.to_element_id:
                raise DecodeFailureError(reason="self-referential relationship", location=where)
            missing = [str(x) for x in endpoints if x not in element_ids]
            if missing:
                raise DecodeFailureError(
                    reason=f"relationship endpoint(s) not in world: {', '.join(missing)}",
                    location=where,
                )


def rename_world(world: ExportWorld) -> ExportWorld:
    """Give a world and everything in it fresh identities.

    The title gets the imported marker; element, relationship, and mention
    references are remapped consistently.
    """
    new_world_id = uuid4()
    element_map = {e.id: uuid4() for e in world.elements}

    elements = tuple(
        element.model_copy(
            update={
                "id": element_map[element.id],
                "world_id": new_world_id,
                "mentions": tuple(
                    m.model_copy(update={"id": uuid4(), "element_id": element_map[m.element_id]})
                    for m in element.mentions
                ),
            }
        )
        for element in world.elements
    )
    relationships = tuple(
        r.model_copy(
            update={
                "id": uuid4(),
                "from_element_id": element_map[r.from_element_id],
                "to_element_id": element_map[r.to_element_id],
            }
        )
        for r in world.relationships
    )
    return world.model_copy(
        update={
            "id": new_world_id,
            "title": world.title + IMPORTED_SUFFIX,
            "elements": elements,
            "relationships": relationships,
        }
    )


def identity_map(original: ExportWorld, renamed: ExportWorld) -> dict[UUID, UUID]:
    """Map every id in *original* to its counterpart in the output of :func:`rename_world`."""
    pairs = zip(
        (*original.elements, *original.relationships),
        (*renamed.elements, *renamed.relationships),
        strict=True,
    )
    return {original.id: renamed.id} | {old.id: new.id for old, new in pairs}


def remap_activity(item: ActivityItem, ids: dict[UUID, UUID], world_title: str) -> ActivityItem:
    """Re-home an exported activity item onto a renamed world.

    Ids of entities deleted before the export have no counterpart; they get
    fresh ids, recorded in *ids* so later items stay consistent.
    """

    def swap(identity: UUID | None) -> UUID | None:
        return None if identity is None else ids.setdefault(identity, uuid4())

    return item.model_copy(
        update={
            "id": uuid4(),
            "world_id": ids[item.world_id],
            "world_title": world_title,
            "element_id": swap(item.element_id),
            "relationship_id": swap(item.relationship_id),
        }
    )


class ImportEngine:
    """Restore canonical exports into a WorldGraph.

    Args:
        graph: The graph to write into. Its access policy governs the import.
    """

    def __init__(self, graph: WorldGraph) -> None:
        self.graph = graph

    def find_conflicts(self, document: ExportDocument) -> list[WorldConflict]:
        """List every incoming world that collides with existing data."""
        conflicts: list[WorldConflict] = []
        for world in document.worlds:
            reason = ""
            if self.graph.has_world(world.id):
                reason = "a world with this id already exists"
            elif any(self.graph.find_element(e.id) is not None for e in world.elements):
                reason = "some element ids already exist"
            elif any(self.graph.has_relationship(r.id) for r in world.relationships):
                reason = "some relationship ids already exist"
            if reason:
                conflicts.append(
                    WorldConflict(world_id=str(world.id), title=world.title, reason=reason)
                )
        return conflicts

    def import_canonical(
        self,
        data: bytes | str,
        on_conflict: ConflictResolution | None = None,
        restore_activity: bool = True,
    ) -> ImportResult:
        """Import a canonical JSON export.

        Args:
            data: The exported document.
            on_conflict: How to treat colliding worlds. None refuses to
                import anything when a collision exists.
            restore_activity: Merge the document's recent activity into the log.

        Returns:
            What was imported, skipped, and renamed.

        Raises:
            FormatUnsupportedError: If the policy disallows the canonical format.
            DecodeFailureError: If the document is malformed or inconsistent.
            ImportConflictError: If worlds collide and no resolution was given.
            LimitExceededError: If the import would exceed a ceiling.
        """
        ExportEngine(self.graph.policy).check_format(ExportFormat.JSON)
        document = decode(data)
        check_consistency(document)

        with self.graph.transaction():
            conflicts = self.find_conflicts(document)
            if conflicts and on_conflict is None:
                raise ImportConflictError(conflicts=conflicts)
            conflicting = {UUID(c.world_id) for c in conflicts}

            result = ImportResult()
            renames: dict[UUID, tuple[dict[UUID, UUID], str]] = {}
            for world in document.worlds:
                incoming_id = world.id
                if incoming_id in conflicting:
                    if on_conflict is ConflictResolution.SKIP:
                        result.skipped.append(incoming_id)
                        continue
                    original, world = world, rename_world(world)
                    result.renamed[incoming_id] = world.id
                    renames[incoming_id] = (identity_map(original, world), world.title)

                self.graph.restore_world(world.to_world(), world.elements, world.relationships)
                result.imported.append(world.id)
                result.elements += len(world.elements)
                result.relationships += len(world.relationships)

        if restore_activity and document.recent_activity:
            restorable = _restorable_activity(document.recent_activity, result, renames)
            result.activity_restored = self.graph.activity.merge(restorable)

        log.info(
            "import_complete",
            imported=len(result.imported),
            skipped=len(result.skipped),
            renamed=len(result.renamed),
            elements=result.elements,
            relationships=result.relationships,
            activity=result.activity_restored,
        )
        return result

    def import_from(
        self,
        source: FileSource,
        reference: str,
        on_conflict: ConflictResolution | None = None,
        restore_activity: bool = True,
    ) -> ImportResult:
        """Read a document through *source* and import it."""
        return self.import_canonical(
            source.read(reference),
            on_conflict=on_conflict,
            restore_activity=restore_activity,
        )


def _restorable_activity(
    items: Iterable[ActivityItem],
    result: ImportResult,
    renames: dict[UUID, tuple[dict[UUID, UUID], str]],
) -> Iterator[ActivityItem]:
    # Only history of worlds written by this import; renamed copies are re-homed.
    kept = set(result.imported)
    for item in items:
        if item.world_id in renames:
            ids, title = renames[item.world_id]
            yield remap_activity(item, ids, title)
        elif item.world_id in kept:
            yield item
