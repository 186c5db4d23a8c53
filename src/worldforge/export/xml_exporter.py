"""XML export format.

Mirrors the canonical structure under a ``<WorldForgeExport>`` root. All
user-authored text goes into CDATA sections (a literal ``]]>`` is split
across two sections), and identities, types, and timestamps go into quoted
attributes. Characters that XML 1.0 cannot represent at all are dropped.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from xml.sax.saxutils import quoteattr

from worldforge.models.world import format_timestamp
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from worldforge.export.base import ExportDocument, ExportWorld
    from worldforge.models.activity import ActivityItem
    from worldforge.models.world import WorldElement

log = get_logger(__name__)

ROOT_TAG = "WorldForgeExport"

_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def cdata(text: str) -> str:
    """Wrap *text* in CDATA, splitting any ``]]>`` it contains."""
    clean = _INVALID_XML_CHARS.sub("", text)
    return "<![CDATA[" + clean.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _attrs(**values: object) -> str:
    parts = []
    for name, value in values.items():
        if value is None:
            continue
        parts.append(f"{name}={quoteattr(_INVALID_XML_CHARS.sub('', str(value)))}")
    return " ".join(parts)


def _text_element(indent: str, tag: str, text: str) -> str:
    return f"{indent}<{tag}>{cdata(text)}</{tag}>"


def _render_element(element: WorldElement) -> list[str]:
    pad = " " * 8
    lines = [
        f"{pad}<element "
        + _attrs(
            id=element.id,
            type=element.type.value,
            created=format_timestamp(element.created),
            lastModified=format_timestamp(element.last_modified),
        )
        + ">",
        _text_element(pad + "  ", "title", element.title),
        _text_element(pad + "  ", "content", element.content),
    ]
    if element.tags:
        lines.append(f"{pad}  <tags>")
        lines.extend(_text_element(pad + "    ", "tag", tag) for tag in element.tags)
        lines.append(f"{pad}  </tags>")
    else:
        lines.append(f"{pad}  <tags/>")
    if element.mentions:
        lines.append(f"{pad}  <mentions>")
        for mention in element.mentions:
            attrs = _attrs(
                id=mention.id,
                elementId=mention.element_id,
                startIndex=mention.start_index,
                length=mention.length,
            )
            lines.append(f"{pad}    <mention {attrs}>{cdata(mention.element_title)}</mention>")
        lines.append(f"{pad}  </mentions>")
    lines.append(f"{pad}</element>")
    return lines


def _render_world(world: ExportWorld) -> list[str]:
    pad = " " * 4
    lines = [
        f"{pad}<world "
        + _attrs(
            id=world.id,
            created=format_timestamp(world.created),
            lastModified=format_timestamp(world.last_modified),
        )
        + ">",
        _text_element(pad + "  ", "title", world.title),
        _text_element(pad + "  ", "description", world.description),
        f"{pad}  <elements>",
    ]
    for element in world.elements:
        lines.extend(_render_element(element))
    lines.append(f"{pad}  </elements>")

    lines.append(f"{pad}  <relationships>")
    for relationship in world.relationships:
        attrs = _attrs(
            id=relationship.id,
            fromElementId=relationship.from_element_id,
            toElementId=relationship.to_element_id,
            type=relationship.type.value,
            bidirectional=str(relationship.bidirectional).lower(),
            created=format_timestamp(relationship.created),
        )
        lines.append(f"{pad}    <relationship {attrs}>")
        lines.append(_text_element(pad + "      ", "description", relationship.description))
        lines.append(f"{pad}    </relationship>")
    lines.append(f"{pad}  </relationships>")
    lines.append(f"{pad}</world>")
    return lines


def _render_activity(item: ActivityItem) -> list[str]:
    pad = " " * 4
    attrs = _attrs(
        id=item.id,
        type=item.type.value,
        timestamp=format_timestamp(item.timestamp),
        worldId=item.world_id,
        elementId=item.element_id,
        elementType=item.element_type.value if item.element_type else None,
        relationshipId=item.relationship_id,
    )
    lines = [f"{pad}<activity {attrs}>", _text_element(pad + "  ", "worldTitle", item.world_title)]
    if item.element_title is not None:
        lines.append(_text_element(pad + "  ", "elementTitle", item.element_title))
    lines.append(_text_element(pad + "  ", "details", item.details))
    lines.append(f"{pad}</activity>")
    return lines


class XmlExporter:
    """Export worlds as structured XML."""

    format_name = "xml"
    file_extension = "xml"
    media_type = "application/xml"

    def render(self, document: ExportDocument) -> bytes:
        """Render the document as a UTF-8 XML document."""
        root_attrs = _attrs(
            version=document.version,
            exportDate=format_timestamp(document.export_date),
        )
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f"<{ROOT_TAG} {root_attrs}>",
            "  <worlds>",
        ]
        for world in document.worlds:
            lines.extend(_render_world(world))
        lines.append("  </worlds>")

        if document.recent_activity:
            lines.append("  <recentActivity>")
            for item in document.recent_activity:
                lines.extend(_render_activity(item))
            lines.append("  </recentActivity>")

        lines.append(f"</{ROOT_TAG}>")
        log.debug("xml_export_complete", worlds=len(document.worlds))
        return ("\n".join(lines) + "\n").encode("utf-8")
