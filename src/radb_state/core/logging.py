"""
Logging utilities for the state layer.

Provides structured logging with snapshot/operation context so that
warnings from bulk scans (skipped files, malformed changelog lines, failed
deletes) can be traced back to the call that produced them.
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional


PACKAGE_LOGGER = "radb_state"

CONTEXT_FIELDS = ("operation", "snapshot_id", "state_dir", "object_type")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Context fields if present (operation, snapshot_id, state_dir)
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with context.

    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [operation=X snapshot_id=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        context_parts = []
        for field in ("operation", "snapshot_id"):
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


class ContextFilter(logging.Filter):
    """Copies the active LogContext onto every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get_current().items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


def parse_level(level: Any) -> int:
    """Accept 'INFO', 'debug', 20 and friends; fall back to INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: Any = logging.INFO,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    structured: bool = False,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level (int or name)
        format_string: Custom format string (ignored if structured=True)
        include_timestamp: Whether to include timestamp in log messages
        structured: If True, output JSON-structured logs; if False, human-readable

    Returns:
        The configured package logger
    """
    level = parse_level(level)
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(level)

    # Only add handler if none exist (avoid duplicate handlers)
    if not pkg_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)

        if structured:
            formatter = StructuredFormatter(include_timestamp=include_timestamp)
        elif format_string:
            formatter = logging.Formatter(format_string)
        else:
            formatter = HumanReadableFormatter(include_timestamp=include_timestamp)

        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        pkg_logger.addHandler(handler)

    return pkg_logger


class LogContext:
    """
    Context manager for adding context fields to log records.

    Contexts nest, and are tracked per thread (and per asyncio task), so
    concurrent operations never see each other's fields.

    Example:
        >>> with LogContext(operation="cleanup", state_dir="/var/lib/radb"):
        ...     logger.info("Starting")  # carries operation and state_dir
    """

    _current: ContextVar[Dict[str, Any]] = ContextVar("radb_state_log_context", default={})

    def __init__(
        self,
        operation: Optional[str] = None,
        snapshot_id: Optional[str] = None,
        **extra: Any,
    ):
        self.context = {
            "operation": operation,
            "snapshot_id": snapshot_id,
            **extra,
        }
        self.context = {k: v for k, v in self.context.items() if v is not None}
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        merged = {**LogContext._current.get(), **self.context}
        self._token = LogContext._current.set(merged)
        return self

    def __exit__(self, *args) -> None:
        LogContext._current.reset(self._token)
        self._token = None

    @classmethod
    def get_current(cls) -> Dict[str, Any]:
        """Get the current context, merged with any enclosing contexts."""
        return dict(cls._current.get())
