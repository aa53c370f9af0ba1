"""
Append-only change history.

Stored as newline-delimited JSON at {state_dir}/changelog.jsonl, one
ChangelogEntry per line. The log outlives the snapshots it was computed
from; retention of snapshots never touches it.
"""

import json
import logging
import os
from collections import deque
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..core.exceptions import StorageError
from ..core.utils import CancelToken, check_cancelled, ensure_utc, format_timestamp
from ..models import ChangelogEntry, ChangeSet
from ..snapshot.locking import DirectoryLock

logger = logging.getLogger(__name__)

CHANGELOG_FILENAME = "changelog.jsonl"


@dataclass
class TimeRange:
    """Inclusive query window; None means unbounded on that side."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, timestamp: datetime) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"from": format_timestamp(self.start), "to": format_timestamp(self.end)}


@dataclass
class HistoryStatistics:
    """Aggregate counts over a window of the changelog."""
    total_changes: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    by_object_type: Dict[str, int] = field(default_factory=dict)
    first_change: Optional[datetime] = None
    last_change: Optional[datetime] = None
    time_range: TimeRange = field(default_factory=TimeRange)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_changes": self.total_changes,
            "by_type": dict(self.by_type),
            "by_object_type": dict(self.by_object_type),
            "first_change": format_timestamp(self.first_change),
            "last_change": format_timestamp(self.last_change),
            "time_range": self.time_range.to_dict(),
        }


def _type_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


class ChangeLog:
    """
    Durable, line-delimited history of object changes.

    A missing log file is an empty history. Malformed lines are skipped
    with a warning by every reader, so one bad line never hides the rest.
    """

    def __init__(self, state_dir: Path, lock: Optional[DirectoryLock] = None):
        """
        Initialize the changelog.

        Args:
            state_dir: Directory holding changelog.jsonl
            lock: Optional directory lock; when given, appends and
                compaction hold it so compaction cannot drop a concurrent append
        """
        self.path = Path(state_dir) / CHANGELOG_FILENAME
        self.lock = lock

    def _locked(self, operation: str, cancel: Optional[CancelToken]):
        if self.lock is None:
            return nullcontext()
        return self.lock.hold(operation, cancel=cancel)

    def append(self, change_set: Optional[ChangeSet], cancel: Optional[CancelToken] = None) -> int:
        """
        Append every change in the set as its own JSON line.

        An empty (or None) change set leaves the file untouched.

        Returns:
            Number of entries written

        Raises:
            StorageError: The log could not be created or written
        """
        if change_set is None or change_set.is_empty():
            logger.debug("Skipping empty changeset")
            return 0

        lines = []
        for change in change_set.changes:
            entry = ChangelogEntry.from_change(change, change_set.to_snapshot)
            lines.append(
                (json.dumps(entry.to_dict(), ensure_ascii=False) + "\n").encode("utf-8")
            )

        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"failed to create changelog directory: {e}", path=str(self.path.parent)
            ) from e

        with self._locked("append", cancel):
            try:
                fd = os.open(str(self.path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
                # Unbuffered: each line reaches the file in a single write call
                with os.fdopen(fd, "ab", buffering=0) as f:
                    for line in lines:
                        written = f.write(line)
                        if written != len(line):
                            raise StorageError(
                                f"short write to changelog: {written} of {len(line)} bytes",
                                path=str(self.path),
                            )
            except OSError as e:
                raise StorageError(
                    f"failed to write changelog entry: {e}", path=str(self.path)
                ) from e

        logger.info(f"Appended {len(lines)} changes to changelog")
        return len(lines)

    def _scan(self, cancel: Optional[CancelToken] = None) -> Iterator[Tuple[bytes, ChangelogEntry]]:
        """
        Yield (raw line, entry) for every well-formed line in file order.

        Raises:
            StorageError: The file exists but cannot be read
        """
        try:
            f = open(self.path, "rb")
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"failed to open changelog file: {e}", path=str(self.path)) from e

        with f:
            for line_num, raw in enumerate(f, 1):
                check_cancelled(cancel, "changelog scan")
                if not raw.strip():
                    continue
                try:
                    data = json.loads(raw.decode("utf-8"))
                    if not isinstance(data, dict):
                        raise ValueError("entry is not a JSON object")
                    entry = ChangelogEntry.from_dict(data)
                except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
                    logger.warning(f"Failed to parse changelog entry at line {line_num}: {e}")
                    continue
                yield raw, entry

    def query(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        object_type: Any = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[ChangelogEntry]:
        """
        Return entries with start <= timestamp <= end, in file order.

        Args:
            start: Inclusive lower bound (None = unbounded)
            end: Inclusive upper bound (None = unbounded)
            object_type: Only entries for this object type ('route'/'contact')
            cancel: Optional cancellation token, checked per line
        """
        window = TimeRange(
            start=ensure_utc(start) if start is not None else None,
            end=ensure_utc(end) if end is not None else None,
        )
        wanted_type = _type_name(object_type)

        entries = []
        for _, entry in self._scan(cancel):
            if not window.contains(entry.timestamp):
                continue
            if wanted_type and entry.object_type != wanted_type:
                continue
            entries.append(entry)
        return entries

    def since(self, since: datetime, cancel: Optional[CancelToken] = None) -> List[ChangelogEntry]:
        """Entries at or after a point in time."""
        return self.query(start=since, cancel=cancel)

    def recent(self, limit: int, cancel: Optional[CancelToken] = None) -> List[ChangelogEntry]:
        """The last `limit` entries in file order."""
        if limit <= 0:
            return []
        tail = deque(maxlen=limit)
        for _, entry in self._scan(cancel):
            tail.append(entry)
        return list(tail)

    def statistics(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        cancel: Optional[CancelToken] = None,
    ) -> HistoryStatistics:
        """Count changes per change type and object type within a window."""
        entries = self.query(start=start, end=end, cancel=cancel)

        stats = HistoryStatistics(
            total_changes=len(entries),
            time_range=TimeRange(
                start=ensure_utc(start) if start is not None else None,
                end=ensure_utc(end) if end is not None else None,
            ),
        )

        for entry in entries:
            change_type = _type_name(entry.change_type)
            stats.by_type[change_type] = stats.by_type.get(change_type, 0) + 1
            stats.by_object_type[entry.object_type] = stats.by_object_type.get(entry.object_type, 0) + 1

            if stats.first_change is None or entry.timestamp < stats.first_change:
                stats.first_change = entry.timestamp
            if stats.last_change is None or entry.timestamp > stats.last_change:
                stats.last_change = entry.timestamp

        return stats

    def compact(self, keep_after: datetime, cancel: Optional[CancelToken] = None) -> int:
        """
        Drop every entry at or before the cutoff.

        Kept entries are copied byte-for-byte to a temp file which then
        replaces the log. Malformed lines are dropped.

        Returns:
            Number of entries kept
        """
        if not self.path.exists():
            return 0

        cutoff = ensure_utc(keep_after)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        with self._locked("compact", cancel):
            kept = [raw for raw, entry in self._scan(cancel) if entry.timestamp > cutoff]

            try:
                fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
                with os.fdopen(fd, "wb") as f:
                    for raw in kept:
                        f.write(raw if raw.endswith(b"\n") else raw + b"\n")
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(str(tmp_path), str(self.path))
            except OSError as e:
                try:
                    tmp_path.unlink()
                except FileNotFoundError:
                    pass
                raise StorageError(
                    f"failed to replace changelog file: {e}", path=str(self.path)
                ) from e

        logger.info(f"Compacted changelog: kept {len(kept)} entries, removed older entries")
        return len(kept)
