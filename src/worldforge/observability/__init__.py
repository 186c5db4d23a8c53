"""Structured logging for WorldForge: rich console output and a JSONL debug log."""

from worldforge.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
    log_context,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
    "log_context",
]
