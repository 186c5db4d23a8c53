"""Export engine: policy check, document build, format dispatch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from worldforge.export.context import build_export_document
from worldforge.export.csv_exporter import CsvExporter
from worldforge.export.json_exporter import JsonExporter
from worldforge.export.markdown_exporter import MarkdownExporter
from worldforge.export.text_exporter import TextExporter
from worldforge.export.xml_exporter import XmlExporter
from worldforge.graph.errors import FormatUnsupportedError
from worldforge.models.formats import ExportFormat
from worldforge.observability.logging import get_logger
from worldforge.policy import AccessPolicy

if TYPE_CHECKING:
    from pathlib import Path

    from worldforge.export.base import Exporter
    from worldforge.graph.snapshot import GraphSnapshot

log = get_logger(__name__)

_EXPORTERS: dict[ExportFormat, type[Exporter]] = {
    ExportFormat.JSON: JsonExporter,
    ExportFormat.TEXT: TextExporter,
    ExportFormat.MARKDOWN: MarkdownExporter,
    ExportFormat.CSV: CsvExporter,
    ExportFormat.XML: XmlExporter,
}


def resolve_format(format_name: str | ExportFormat) -> ExportFormat:
    """Parse a format name.

    Raises:
        FormatUnsupportedError: If the format is not recognized.
    """
    try:
        return ExportFormat.parse(format_name)
    except ValueError as e:
        raise FormatUnsupportedError(
            format_name=str(format_name),
            allowed=[f.value for f in ExportFormat],
            reason="unknown format",
        ) from e


def get_exporter(format_name: str | ExportFormat) -> Exporter:
    """Get an exporter instance by format name.

    Raises:
        FormatUnsupportedError: If the format is not recognized.
    """
    return _EXPORTERS[resolve_format(format_name)]()


class ExportEngine:
    """Render graph snapshots in any format the access policy allows.

    Args:
        policy: Access policy listing the allowed formats. Defaults to free tier.
    """

    def __init__(self, policy: AccessPolicy | None = None) -> None:
        self.policy = policy or AccessPolicy.free()

    def check_format(self, format_name: str | ExportFormat) -> ExportFormat:
        """Resolve *format_name* and check it against the policy.

        Raises:
            FormatUnsupportedError: If the format is unknown or disallowed.
        """
        fmt = resolve_format(format_name)
        if not self.policy.allows_format(fmt):
            raise FormatUnsupportedError(
                format_name=fmt.value,
                allowed=[f.value for f in ExportFormat if self.policy.allows_format(f)],
            )
        return fmt

    def export(
        self,
        snapshot: GraphSnapshot,
        fmt: str | ExportFormat,
        include_activity: bool = True,
    ) -> bytes:
        """Render *snapshot* in *fmt*.

        Args:
            snapshot: Point-in-time view of the worlds to export.
            fmt: Target format.
            include_activity: Whether to include recent activity (for the
                formats that carry it).

        Returns:
            The encoded export.

        Raises:
            FormatUnsupportedError: If the format is unknown or disallowed.
        """
        resolved = self.check_format(fmt)
        document = build_export_document(snapshot, include_activity=include_activity)
        payload = _EXPORTERS[resolved]().render(document)
        log.info(
            "export_complete",
            format=resolved.value,
            worlds=len(document.worlds),
            elements=document.element_count,
            size=len(payload),
        )
        return payload

    def write(
        self,
        snapshot: GraphSnapshot,
        fmt: str | ExportFormat,
        output_dir: Path,
        include_activity: bool = True,
    ) -> Path:
        """Export to a timestamped file in *output_dir*.

        Returns:
            Path to the written file.
        """
        resolved = self.check_format(fmt)
        payload = self.export(snapshot, resolved, include_activity=include_activity)
        output_dir.mkdir(parents=True, exist_ok=True)
        stamp = snapshot.taken_at.strftime("%Y%m%d-%H%M%S")
        extension = _EXPORTERS[resolved].file_extension
        output_file = output_dir / f"worldforge-export-{stamp}.{extension}"
        output_file.write_bytes(payload)
        return output_file
