"""CSV export format.

One row per element with a fixed header. Every field is quoted, embedded
quotes are doubled, and newlines stay inside their quoted field, so any
spreadsheet that follows RFC 4180 reads the content back intact.
"""

from __future__ import annotations

import csv
import io
from typing import TYPE_CHECKING

from worldforge.graph.relationships import describe
from worldforge.models.world import format_timestamp
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from worldforge.export.base import ExportDocument, ExportWorld
    from worldforge.models.world import WorldElement

log = get_logger(__name__)

HEADER = (
    "World",
    "Element Type",
    "Element Title",
    "Element Content",
    "Tags",
    "Created",
    "Last Modified",
    "Relationships",
)


def _relationship_summary(element: WorldElement, world: ExportWorld) -> str:
    titles = world.titles
    parts = []
    for relationship in world.relationships_for(element.id):
        part = describe(relationship, element.id, titles)
        if relationship.description:
            part += f" ({relationship.description})"
        parts.append(part)
    return "; ".join(parts)


class CsvExporter:
    """Export elements as spreadsheet rows."""

    format_name = "csv"
    file_extension = "csv"
    media_type = "text/csv"

    def render(self, document: ExportDocument) -> bytes:
        """Render one row per element, worlds in order, elements by title."""
        buffer = io.StringIO(newline="")
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
        writer.writerow(HEADER)

        rows = 0
        for world in document.worlds:
            for element in world.elements:
                writer.writerow(
                    (
                        world.title,
                        element.type.value,
                        element.title,
                        element.content,
                        "; ".join(element.tags),
                        format_timestamp(element.created),
                        format_timestamp(element.last_modified),
                        _relationship_summary(element, world),
                    )
                )
                rows += 1

        log.debug("csv_export_complete", rows=rows)
        return buffer.getvalue().encode("utf-8")
