"""Export format handlers (JSON, text, Markdown, CSV, XML) and canonical import."""

from __future__ import annotations

from worldforge.export.base import CANONICAL_VERSION, ExportDocument, Exporter, ExportWorld
from worldforge.export.canonical import decode, encode
from worldforge.export.context import build_export_document
from worldforge.export.csv_exporter import CsvExporter
from worldforge.export.engine import ExportEngine, get_exporter, resolve_format
from worldforge.export.importer import ConflictResolution, ImportEngine, ImportResult
from worldforge.export.json_exporter import JsonExporter
from worldforge.export.markdown_exporter import MarkdownExporter
from worldforge.export.text_exporter import TextExporter
from worldforge.export.xml_exporter import XmlExporter

__all__ = [
    "CANONICAL_VERSION",
    "ConflictResolution",
    "CsvExporter",
    "ExportDocument",
    "ExportEngine",
    "ExportWorld",
    "Exporter",
    "ImportEngine",
    "ImportResult",
    "JsonExporter",
    "MarkdownExporter",
    "TextExporter",
    "XmlExporter",
    "build_export_document",
    "decode",
    "encode",
    "get_exporter",
    "resolve_format",
]
