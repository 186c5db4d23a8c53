"""Build an ExportDocument from a graph snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from worldforge.export.base import ExportDocument, ExportWorld

if TYPE_CHECKING:
    from worldforge.graph.snapshot import GraphSnapshot, WorldSnapshot


def _export_world(snapshot: WorldSnapshot) -> ExportWorld:
    world = snapshot.world
    return ExportWorld(
        id=world.id,
        title=world.title,
        description=world.description,
        created=world.created,
        last_modified=world.last_modified,
        elements=snapshot.elements,
        relationships=snapshot.relationships,
    )


def build_export_document(
    snapshot: GraphSnapshot,
    include_activity: bool = True,
) -> ExportDocument:
    """Convert a snapshot into the document every exporter renders.

    Args:
        snapshot: Point-in-time view of the worlds to export.
        include_activity: Whether to carry the snapshot's activity items.

    Returns:
        ExportDocument dated at the moment the snapshot was taken.
    """
    return ExportDocument(
        export_date=snapshot.taken_at,
        worlds=tuple(_export_world(w) for w in snapshot.worlds),
        recent_activity=snapshot.activity if include_activity else (),
    )
