"""
Local state layer for the RADb client.

Keeps point-in-time snapshots of route and contact objects on disk,
computes differences between them, records those differences in an
append-only changelog, and prunes old snapshots by retention policy.
"""

from .config import StateConfig
from .core import (
    CancelToken,
    CancelledError,
    ConfigError,
    IntegrityError,
    LockTimeoutError,
    NotFoundError,
    ParseError,
    SnapshotSource,
    StateError,
    StorageError,
    ValidationError,
)
from .diff import DiffEngine
from .history import ChangeLog
from .models import (
    ChangeSet,
    Contact,
    ContactList,
    DiffResult,
    RouteList,
    RouteObject,
    Snapshot,
    SnapshotType,
)
from .retention import CleanupOptions, CleanupResult, RetentionManager
from .services import StateServices
from .snapshot import SnapshotStore

__version__ = "0.1.0"

__all__ = [
    "StateConfig",
    "StateServices",
    "SnapshotStore",
    "DiffEngine",
    "ChangeLog",
    "RetentionManager",
    "CleanupOptions",
    "CleanupResult",
    "Snapshot",
    "SnapshotType",
    "RouteObject",
    "RouteList",
    "Contact",
    "ContactList",
    "DiffResult",
    "ChangeSet",
    "SnapshotSource",
    "CancelToken",
    "StateError",
    "ValidationError",
    "LockTimeoutError",
    "NotFoundError",
    "IntegrityError",
    "StorageError",
    "ParseError",
    "CancelledError",
    "ConfigError",
]
