"""Export format identifiers."""

from __future__ import annotations

from enum import StrEnum


class ExportFormat(StrEnum):
    """Supported export formats. Only JSON is canonical and importable."""

    JSON = "json"
    TEXT = "text"
    MARKDOWN = "markdown"
    CSV = "csv"
    XML = "xml"

    @classmethod
    def parse(cls, value: str | ExportFormat) -> ExportFormat:
        """Resolve a format name, accepting common aliases (``md``, ``txt``).

        Raises:
            ValueError: If *value* names no format.
        """
        if isinstance(value, ExportFormat):
            return value
        key = value.strip().lower()
        key = {"md": "markdown", "txt": "text", "plain": "text"}.get(key, key)
        try:
            return cls(key)
        except ValueError:
            supported = ", ".join(f.value for f in cls)
            msg = f"Unknown export format '{value}'. Supported: {supported}"
            raise ValueError(msg) from None

    @property
    def is_canonical(self) -> bool:
        return self is ExportFormat.JSON
