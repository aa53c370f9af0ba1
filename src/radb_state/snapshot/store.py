"""
File-based snapshot storage.

Each snapshot is one indented JSON document under the state directory:

    {state_dir}/
        .lock                      advisory lock sentinel
        route-1700000000.json
        contact-1700000100.json
        full-1700000200.json
        changelog.jsonl            (owned by ChangeLog)

Writes go to '<id>.json.tmp' and are renamed into place, so a reader never
sees a half-written snapshot under its final name.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..core.exceptions import (
    IntegrityError,
    NotFoundError,
    ParseError,
    StorageError,
    ValidationError,
)
from ..core.logging import LogContext
from ..core.source import SnapshotSource
from ..core.utils import CancelToken, check_cancelled
from ..models import FORMAT_VERSION, Snapshot, SnapshotType
from .canonical import compute_payload_checksum
from .locking import DEFAULT_LOCK_TIMEOUT, DEFAULT_POLL_INTERVAL, DirectoryLock

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"


class SnapshotStore:
    """
    Persists, retrieves, lists and deletes snapshots in a directory.

    Supports:
    - Atomic, checksummed saves (idempotent by snapshot id)
    - Verified loads that refuse tampered or corrupt data
    - Best-effort listing that skips unreadable files
    - Capturing new snapshots from a SnapshotSource
    """

    def __init__(
        self,
        state_dir: Path,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        lock_poll_interval: float = DEFAULT_POLL_INTERVAL,
        strict_records: bool = False,
    ):
        """
        Initialize the store, creating the directory if needed.

        Args:
            state_dir: Directory holding snapshot files
            lock_timeout: Seconds to wait for the directory lock
            lock_poll_interval: Seconds between lock attempts
            strict_records: Run per-record registry validation on save
        """
        self.state_dir = Path(state_dir)
        self.strict_records = strict_records

        try:
            self.state_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"failed to create state directory: {e}", path=str(self.state_dir)
            ) from e

        self.lock = DirectoryLock(
            self.state_dir, timeout=lock_timeout, poll_interval=lock_poll_interval
        )

    def path_for(self, snapshot_id: str) -> Path:
        """
        Resolve the file path for a snapshot id.

        Raises:
            ValidationError: If the id is empty or would escape the directory
        """
        if not snapshot_id or snapshot_id in (".", ".."):
            raise ValidationError(f"invalid snapshot id: {snapshot_id!r}")
        if "/" in snapshot_id or "\\" in snapshot_id or "\x00" in snapshot_id:
            raise ValidationError(f"invalid snapshot id: {snapshot_id!r}")
        return self.state_dir / f"{snapshot_id}{SNAPSHOT_SUFFIX}"

    def exists(self, snapshot_id: str) -> bool:
        return self.path_for(snapshot_id).exists()

    def save(self, snapshot: Snapshot, cancel: Optional[CancelToken] = None) -> Path:
        """
        Validate, checksum and atomically write a snapshot.

        Args:
            snapshot: The snapshot to persist; its checksum is updated in place
            cancel: Optional cancellation token

        Returns:
            Path of the written file

        Raises:
            ValidationError: Snapshot is malformed (nothing is written)
            LockTimeoutError: Directory lock not acquired in time
            CancelledError: Cancelled while waiting
            StorageError: The write or rename failed
        """
        snapshot.validate(strict_records=self.strict_records)
        path = self.path_for(snapshot.id)

        with LogContext(operation="save", snapshot_id=snapshot.id):
            with self.lock.hold("save", cancel=cancel):
                snapshot.compute_checksum()
                data = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)
                check_cancelled(cancel, "save")
                self._write_atomic(path, data.encode("utf-8"))

            logger.info(f"Saved snapshot {snapshot.id} ({len(data)} bytes)")
        return path

    def _write_atomic(self, path: Path, data: bytes) -> None:
        """Write to a temp file, fsync, then rename over the target."""
        tmp_path = path.with_name(path.name + TEMP_SUFFIX)
        try:
            fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(str(tmp_path), str(path))
        except OSError as e:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            raise StorageError(f"failed to save snapshot: {e}", path=str(path)) from e

    def load(self, snapshot_id: str, cancel: Optional[CancelToken] = None) -> Snapshot:
        """
        Load a snapshot and verify its checksum.

        Raises:
            NotFoundError: No snapshot with this id
            ParseError: File is not a valid snapshot document
            IntegrityError: Checksum does not match the payload
            LockTimeoutError: Directory lock not acquired in time
        """
        path = self.path_for(snapshot_id)

        with self.lock.hold("load", cancel=cancel):
            try:
                raw = path.read_bytes()
            except FileNotFoundError:
                raise NotFoundError(
                    f"snapshot not found: {snapshot_id}", object_id=snapshot_id
                ) from None
            except OSError as e:
                raise StorageError(f"failed to read snapshot: {e}", path=str(path)) from e

        snapshot = self._parse(raw, path)

        expected = snapshot.checksum
        actual = compute_payload_checksum(snapshot.payload())
        if not expected or actual != expected:
            logger.warning(
                f"Snapshot {snapshot_id} failed integrity check",
                extra={"snapshot_id": snapshot_id, "operation": "load"},
            )
            raise IntegrityError(
                f"snapshot integrity check failed for {snapshot_id}: "
                f"expected checksum {expected or '<missing>'}, got {actual}",
                snapshot_id=snapshot_id,
                expected=expected,
                actual=actual,
            )

        logger.debug(f"Loaded snapshot {snapshot_id}")
        return snapshot

    def _parse(self, raw: bytes, path: Path) -> Snapshot:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"corrupt snapshot file {path.name}: {e}", path=str(path)) from e

        if not isinstance(data, dict):
            raise ParseError(f"snapshot file {path.name} is not a JSON object", path=str(path))

        try:
            snapshot = Snapshot.from_dict(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ParseError(f"malformed snapshot file {path.name}: {e}", path=str(path)) from e

        # The file name is the address used by load() and delete()
        if snapshot.id != path.name[: -len(SNAPSHOT_SUFFIX)]:
            raise ParseError(
                f"snapshot file {path.name} contains id {snapshot.id!r}",
                path=str(path),
            )

        if snapshot.version > FORMAT_VERSION:
            raise ParseError(
                f"snapshot {snapshot.id} uses format version {snapshot.version}, "
                f"newest supported is {FORMAT_VERSION}",
                path=str(path),
            )
        return snapshot

    def list(self, cancel: Optional[CancelToken] = None) -> List[Snapshot]:
        """
        List every readable snapshot, newest first.

        Files that cannot be read or parsed (corrupt, or mid-write by
        another process) are skipped with a warning.
        """
        try:
            candidates = sorted(self.state_dir.glob(f"*{SNAPSHOT_SUFFIX}"))
        except OSError as e:
            raise StorageError(
                f"failed to read state directory: {e}", path=str(self.state_dir)
            ) from e

        snapshots = []
        for path in candidates:
            check_cancelled(cancel, "list")
            if not path.is_file():
                continue
            try:
                snapshots.append(self._parse(path.read_bytes(), path))
            except (OSError, ParseError) as e:
                logger.warning(f"Skipping unreadable snapshot file {path.name}: {e}")

        snapshots.sort(key=lambda s: (s.timestamp, s.id), reverse=True)
        return snapshots

    def get_latest(
        self,
        snapshot_type: SnapshotType,
        cancel: Optional[CancelToken] = None,
    ) -> Snapshot:
        """
        Load the newest snapshot of the given type.

        Raises:
            NotFoundError: No snapshot of this type exists
        """
        snapshot_type = SnapshotType(snapshot_type)
        for snapshot in self.list(cancel=cancel):
            if snapshot.type is snapshot_type:
                return self.load(snapshot.id, cancel=cancel)

        raise NotFoundError(f"no snapshots found of type {snapshot_type.value}")

    def delete(self, snapshot_id: str, cancel: Optional[CancelToken] = None) -> None:
        """
        Remove a snapshot file.

        Raises:
            NotFoundError: No snapshot with this id
            LockTimeoutError: Directory lock not acquired in time
            StorageError: The file could not be removed
        """
        path = self.path_for(snapshot_id)

        with self.lock.hold("delete", cancel=cancel):
            try:
                path.unlink()
            except FileNotFoundError:
                raise NotFoundError(
                    f"snapshot not found: {snapshot_id}", object_id=snapshot_id
                ) from None
            except OSError as e:
                raise StorageError(f"failed to delete snapshot: {e}", path=str(path)) from e

        logger.info(f"Deleted snapshot {snapshot_id}")

    def capture(
        self,
        source: SnapshotSource,
        snapshot_type: SnapshotType,
        note: str = "",
        metadata: Optional[Dict[str, str]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Snapshot:
        """
        Build a snapshot from a data source and save it.

        If another snapshot of the same type already exists for the same
        second, a numeric suffix is appended to the new id instead of
        overwriting it.
        """
        snapshot_type = SnapshotType(snapshot_type)
        routes = None
        contacts = None
        if snapshot_type in (SnapshotType.ROUTE, SnapshotType.FULL):
            routes = source.fetch_routes()
        if snapshot_type in (SnapshotType.CONTACT, SnapshotType.FULL):
            contacts = source.fetch_contacts()

        snapshot_metadata = {"source": source.get_name()}
        snapshot_metadata.update(metadata or {})
        snapshot = Snapshot.create(
            snapshot_type,
            note=note,
            routes=routes,
            contacts=contacts,
            metadata=snapshot_metadata,
        )

        with self.lock.hold("capture", cancel=cancel):
            snapshot.id = self._unique_id(snapshot.id)
            self.save(snapshot, cancel=cancel)

        return snapshot

    def _unique_id(self, base_id: str) -> str:
        candidate = base_id
        suffix = 0
        while self.path_for(candidate).exists():
            suffix += 1
            candidate = f"{base_id}-{suffix}"
        return candidate
