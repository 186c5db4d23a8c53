"""Markdown export format.

One ``##`` section per world, one ``###`` section per element type that has
elements, one ``####`` heading per element, then the world's relationships as
a bullet list. All user-authored text is backslash-escaped so titles or
content containing Markdown syntax render literally.
"""

from __future__ import annotations

import re
from collections import defaultdict
from typing import TYPE_CHECKING

from worldforge.graph.relationships import label_for, other_endpoint
from worldforge.models.world import ElementType, format_timestamp
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from worldforge.export.base import ExportDocument, ExportWorld
    from worldforge.models.world import WorldElement

log = get_logger(__name__)

_MARKDOWN_SPECIAL = re.compile(r"([\\`*_{}\[\]()#+\-.!|<>~=&])")
_LEADING_INDENT = re.compile(r"^[ \t]+", re.MULTILINE)


def _hold_indent(match: re.Match[str]) -> str:
    # No-break spaces keep the indent visible without opening a code block.
    return match.group(0).replace("\t", "    ").replace(" ", "\u00a0")


def escape_markdown(text: str) -> str:
    """Backslash-escape Markdown punctuation in *text*.

    Leading indentation becomes no-break spaces, and ``=`` is escaped so a
    line of ``===`` cannot turn the line above it into a heading.
    """
    escaped = _MARKDOWN_SPECIAL.sub(r"\\\1", text)
    return _LEADING_INDENT.sub(_hold_indent, escaped)


def _render_element(element: WorldElement, world: ExportWorld) -> list[str]:
    titles = world.titles
    lines = [f"#### {escape_markdown(element.title)}", ""]
    if element.content:
        lines.extend([escape_markdown(element.content), ""])
    if element.tags:
        tags = ", ".join(escape_markdown(tag) for tag in element.tags)
        lines.extend([f"**Tags:** {tags}", ""])

    related = world.relationships_for(element.id)
    if related:
        lines.append("**Relationships:**")
        lines.append("")
        for relationship in related:
            label = label_for(relationship, element.id)
            other = other_endpoint(relationship, element.id)
            lines.append(f"- *{label}* {escape_markdown(titles.get(other, str(other)))}")
        lines.append("")

    lines.append(
        f"**Created:** {format_timestamp(element.created)} | "
        f"**Modified:** {format_timestamp(element.last_modified)}"
    )
    lines.extend(["", "---", ""])
    return lines


def _render_world(world: ExportWorld) -> list[str]:
    lines = [f"## {escape_markdown(world.title)}", ""]
    if world.description:
        lines.extend([f"**Description:** {escape_markdown(world.description)}", ""])
    lines.extend(
        [
            f"**Created:** {format_timestamp(world.created)}  ",
            f"**Last Modified:** {format_timestamp(world.last_modified)}  ",
            f"**Elements:** {len(world.elements)} | **Relationships:** {len(world.relationships)}",
            "",
        ]
    )

    by_type: dict[ElementType, list[WorldElement]] = defaultdict(list)
    for element in world.elements:
        by_type[element.type].append(element)
    for element_type in ElementType:
        elements = by_type.get(element_type)
        if not elements:
            continue
        lines.extend([f"### {element_type.value}s", ""])
        for element in elements:
            lines.extend(_render_element(element, world))

    if world.relationships:
        titles = world.titles
        lines.extend(["### Relationships", ""])
        for relationship in world.relationships:
            source = escape_markdown(titles.get(relationship.from_element_id, "?"))
            target = escape_markdown(titles.get(relationship.to_element_id, "?"))
            arrow = "↔" if relationship.bidirectional else "→"
            line = f"- **{source}** {arrow} *{relationship.type.value}* {arrow} **{target}**"
            if relationship.description:
                line += f": {escape_markdown(relationship.description)}"
            lines.append(line)
        lines.append("")

    lines.extend(["---", ""])
    return lines


class MarkdownExporter:
    """Export worlds as a Markdown document."""

    format_name = "markdown"
    file_extension = "md"
    media_type = "text/markdown"

    def render(self, document: ExportDocument) -> bytes:
        """Render the document as UTF-8 Markdown."""
        lines = [
            "# WorldForge Export",
            "",
            f"**Export Date:** {format_timestamp(document.export_date)}  ",
            f"**Version:** {document.version}",
            "",
            "---",
            "",
        ]
        for world in document.worlds:
            lines.extend(_render_world(world))

        if document.recent_activity:
            lines.extend(["## Recent Activity", ""])
            for item in document.recent_activity:
                line = f"- **{format_timestamp(item.timestamp)}** {item.type.value}"
                if item.element_title:
                    line += f" {escape_markdown(item.element_title)}"
                elif item.details:
                    line += f" {escape_markdown(item.details)}"
                line += f" in {escape_markdown(item.world_title)}"
                lines.append(line)
            lines.append("")

        log.debug("markdown_export_complete", worlds=len(document.worlds))
        return "\n".join(lines).encode("utf-8")
