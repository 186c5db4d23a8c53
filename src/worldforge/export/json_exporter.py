"""JSON export format.

Serializes the ExportDocument as canonical JSON, the only format that can be
imported back without loss.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from worldforge.export.canonical import encode
from worldforge.observability.logging import get_logger

if TYPE_CHECKING:
    from worldforge.export.base import ExportDocument

log = get_logger(__name__)


class JsonExporter:
    """Export worlds as canonical JSON."""

    format_name = "json"
    file_extension = "json"
    media_type = "application/json"

    def render(self, document: ExportDocument) -> bytes:
        """Encode the document as canonical JSON.

        Args:
            document: Export data in canonical order.

        Returns:
            UTF-8 JSON with sorted keys and 2-space indentation.
        """
        payload = encode(document)
        log.debug(
            "json_export_complete",
            worlds=len(document.worlds),
            activity=len(document.recent_activity),
            size=len(payload),
        )
        return payload
