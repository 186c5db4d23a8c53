"""Logging setup shared by the CLI and the library.

Console output goes through rich at a level picked by ``-v``; ``--log`` (or
``log_to_file`` in config.yaml) adds a JSONL debug log under
``<data_dir>/logs``. Library code only calls :func:`get_logger` and logs
snake_case events with keyword context::

    log.info("world_created", world_id=str(world.id), title=world.title)
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.typing import Processor

DEBUG_LOG_NAME = "debug.jsonl"

# Same layout as activity timestamps so log lines and exports line up.
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_CONSOLE_LEVELS = {0: logging.WARNING, 1: logging.INFO}

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "timestamp": datetime.now(UTC).strftime(_TIMESTAMP_FORMAT),
        "level": record.levelname,
        "logger": record.name,
    }
    # wrap_for_formatter hands the structlog event dict over as record.msg
    if isinstance(record.msg, dict):
        event = dict(record.msg)
        for key in ("level", "timestamp"):
            event.pop(key, None)
        fields["message"] = event.pop("event", "")
        fields.update(event)
    else:
        fields["message"] = record.getMessage()
    return fields


class JSONLFileHandler(logging.FileHandler):
    """Appends one JSON object per record."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(_record_fields(record), default=str, ensure_ascii=False)
            if self.stream:
                self.stream.write(line + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        level=_CONSOLE_LEVELS.get(verbosity, logging.DEBUG),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
    )


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure stdlib logging and structlog.

    Safe to call repeatedly; the CLI calls it once for the console and again
    once the data directory is known.

    Args:
        verbosity: 0 shows warnings, 1 adds info, 2 or more adds debug.
        log_to_file: Also write every event to ``log_dir/debug.jsonl``.
        log_dir: Directory for the debug log.

    Raises:
        ValueError: If log_to_file is set without a log_dir.
    """
    global _configured, _logs_dir

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()
    _logs_dir = None

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        handlers.append(_open_file_handler(log_dir))

    # The root logger stays open whenever any handler wants debug records;
    # each handler filters at its own level.
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )
    _configured = True


def _open_file_handler(log_dir: Path) -> JSONLFileHandler:
    global _file_handler, _logs_dir

    log_dir.mkdir(parents=True, exist_ok=True)
    _logs_dir = log_dir
    _file_handler = JSONLFileHandler(str(log_dir / DEBUG_LOG_NAME), mode="a", encoding="utf-8")
    _file_handler.setLevel(logging.DEBUG)
    return _file_handler


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a bound logger, configuring console logging on first use."""
    if not _configured:
        configure_logging()
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind *values* to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield


def get_logs_dir() -> Path | None:
    """Directory of the JSONL debug log, or None when file logging is off."""
    return _logs_dir


def close_file_logging() -> None:
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
