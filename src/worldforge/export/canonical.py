"""Canonical JSON encoding.

The canonical format is the only lossless, importable one. Encoding is
deterministic: object keys are sorted, elements appear by title and
relationships in insertion order (as the document holds them), text is UTF-8
with 2-space indentation, and timestamps use the fixed-width
``YYYY-MM-DDTHH:MM:SS.ffffffZ`` form. ``decode(encode(doc)) == doc``.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from worldforge.export.base import CANONICAL_VERSION, ExportDocument
from worldforge.graph.errors import DecodeFailureError

SUPPORTED_MAJOR = CANONICAL_VERSION.split(".", 1)[0]


def encode(document: ExportDocument) -> bytes:
    """Serialize *document* to canonical JSON bytes."""
    data = document.model_dump(mode="json", by_alias=True)
    text = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def _location(error: dict[str, Any]) -> str:
    return ".".join(str(part) for part in error.get("loc", ()))


def decode(data: bytes | str) -> ExportDocument:
    """Parse canonical JSON into an ExportDocument.

    Raises:
        DecodeFailureError: If the payload is not UTF-8, not JSON, has an
            unsupported major version, or does not match the schema.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DecodeFailureError(reason=f"not valid UTF-8 ({e.reason})") from e
    else:
        text = data

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeFailureError(
            reason=f"not valid JSON: {e.msg}",
            location=f"line {e.lineno}, column {e.colno}",
        ) from e

    if not isinstance(raw, dict):
        raise DecodeFailureError(reason="top level must be an object")

    version = raw.get("version")
    if not isinstance(version, str) or not version:
        raise DecodeFailureError(reason="missing version", location="version")
    if version.split(".", 1)[0] != SUPPORTED_MAJOR:
        raise DecodeFailureError(
            reason=f"unsupported version {version} (expected {SUPPORTED_MAJOR}.x)",
            location="version",
        )
    for key in ("worlds", "exportDate"):
        if key not in raw:
            raise DecodeFailureError(reason=f"missing required field '{key}'", location=key)

    try:
        return ExportDocument.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        raise DecodeFailureError(
            reason=f"{first['msg']} ({e.error_count()} error(s))",
            location=_location(dict(first)),
        ) from e
