"""
Snapshot storage for point-in-time captures of registry data.

This module provides:
- Canonical hashing: Stable SHA-256 checksums over the routes/contacts payload
- DirectoryLock: Bounded, cancellable advisory lock per state directory
- SnapshotStore: Atomic, verified CRUD over snapshot files
"""

from .canonical import canonicalize, compute_payload_checksum, verify_payload_checksum
from .locking import DirectoryLock, LOCK_FILENAME
from .store import SnapshotStore

__all__ = [
    "canonicalize",
    "compute_payload_checksum",
    "verify_payload_checksum",
    "DirectoryLock",
    "LOCK_FILENAME",
    "SnapshotStore",
]
