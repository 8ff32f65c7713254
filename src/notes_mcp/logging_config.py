"""Centralized logging configuration for notes-mcp."""

import logging
import sys
from pathlib import Path

from notes_mcp.context import ContextFilter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

_configured = False


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure the package logger with level and output destination.

    Logs go to stderr; stdout is reserved for the stdio MCP transport.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to an additional log file.
    """
    global _configured
    if _configured:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger("notes_mcp")
    root.setLevel(log_level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    context_filter = ContextFilter()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(context_filter)
    root.addHandler(stream_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(context_filter)
            root.addHandler(file_handler)
        except OSError:
            root.warning("Could not open log file %s, logging to stderr only", log_file)

    _configured = True


def reset_logging() -> None:
    """Drop configured handlers (useful for testing)."""
    global _configured
    logging.getLogger("notes_mcp").handlers.clear()
    _configured = False
