"""Plain-text export format.

A readable report: each world with its elements (content, tags, and
relationships labelled from the element's side), followed by the world's
relationship list and, optionally, recent activity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from worldforge.graph.relationships import describe
from worldforge.models.world import format_timestamp
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID

    from worldforge.export.base import ExportDocument, ExportWorld
    from worldforge.models.world import WorldElement

log = get_logger(__name__)

TITLE = "WorldForge Export"


def _indent(text: str, prefix: str) -> list[str]:
    return [f"{prefix}{line}" if line else "" for line in text.splitlines()]


def _render_element(
    element: WorldElement,
    world: ExportWorld,
    titles: dict[UUID, str],
) -> list[str]:
    lines = [f"  ELEMENT: {element.title} ({element.type.value})"]
    if element.content:
        lines.append("  Content:")
        lines.extend(_indent(element.content, "    "))
    if element.tags:
        lines.append(f"  Tags: {', '.join(element.tags)}")
    related = world.relationships_for(element.id)
    if related:
        lines.append("  Relationships:")
        for relationship in related:
            lines.append(f"    - {describe(relationship, element.id, titles)}")
    lines.append(
        f"  Created: {format_timestamp(element.created)}"
        f"  Last Modified: {format_timestamp(element.last_modified)}"
    )
    lines.append("")
    return lines


def _render_world(world: ExportWorld) -> list[str]:
    titles = world.titles
    lines = [
        f"WORLD: {world.title}",
        f"Description: {world.description}" if world.description else "Description:",
        f"Created: {format_timestamp(world.created)}",
        f"Last Modified: {format_timestamp(world.last_modified)}",
        f"Elements: {len(world.elements)}",
        f"Relationships: {len(world.relationships)}",
        "",
    ]
    for element in world.elements:
        lines.extend(_render_element(element, world, titles))

    if world.relationships:
        lines.append("  RELATIONSHIPS:")
        for relationship in world.relationships:
            source = titles.get(relationship.from_element_id, str(relationship.from_element_id))
            target = titles.get(relationship.to_element_id, str(relationship.to_element_id))
            line = f"    {source} → {relationship.type.value} → {target}"
            if relationship.bidirectional:
                line += " (bidirectional)"
            if relationship.description:
                line += f": {relationship.description}"
            lines.append(line)
        lines.append("")

    lines.extend(["---", ""])
    return lines


class TextExporter:
    """Export worlds as a plain-text report."""

    format_name = "text"
    file_extension = "txt"
    media_type = "text/plain"

    def render(self, document: ExportDocument) -> bytes:
        """Render the document as UTF-8 plain text."""
        lines = [
            TITLE,
            "=" * len(TITLE),
            f"Export Date: {format_timestamp(document.export_date)}",
            f"Version: {document.version}",
            "",
        ]
        for world in document.worlds:
            lines.extend(_render_world(world))

        if document.recent_activity:
            lines.extend(["RECENT ACTIVITY", ""])
            for item in document.recent_activity:
                lines.append(
                    f"  {format_timestamp(item.timestamp)}  {item.summary()} ({item.world_title})"
                )
            lines.append("")

        log.debug("text_export_complete", worlds=len(document.worlds))
        return "\n".join(lines).encode("utf-8")
