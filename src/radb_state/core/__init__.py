"""
Core subpackage for the state layer.

Contains exceptions, logging utilities, cancellation and the data source
interface.
"""

from .exceptions import (
    StateError,
    ValidationError,
    LockTimeoutError,
    NotFoundError,
    IntegrityError,
    StorageError,
    ParseError,
    CancelledError,
    ConfigError,
)
from .source import SnapshotSource
from .utils import CancelToken, format_timestamp, parse_timestamp, utc_now

__all__ = [
    # Exceptions
    "StateError",
    "ValidationError",
    "LockTimeoutError",
    "NotFoundError",
    "IntegrityError",
    "StorageError",
    "ParseError",
    "CancelledError",
    "ConfigError",
    # Interfaces
    "SnapshotSource",
    # Utilities
    "CancelToken",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
]
