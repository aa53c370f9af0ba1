"""
Retention policies for pruning old snapshots.

Exactly one policy family applies per call, in this order of precedence:
by-type (per-type keep counts), by-count (keep the N newest), by-age
(delete everything strictly older than a cutoff).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..core.exceptions import CancelledError, StateError, ValidationError
from ..core.logging import LogContext
from ..core.utils import CancelToken, ensure_utc, utc_now
from ..models import Snapshot, SnapshotType
from ..snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_KEEP_BY_TYPE: Dict[SnapshotType, int] = {
    SnapshotType.ROUTE: 30,
    SnapshotType.CONTACT: 10,
    SnapshotType.FULL: 5,
}


@dataclass
class CleanupOptions:
    """
    Retention criteria for one cleanup pass.

    Attributes:
        keep_count: Keep this many newest snapshots (0 = unset)
        keep_after: Delete snapshots strictly older than this instant
        keep_by_type: Per-type keep counts; types not listed fall back to
            keep_count, and are left alone when keep_count is unset
        dry_run: Report what would be deleted without deleting
    """
    keep_count: int = 0
    keep_after: Optional[datetime] = None
    keep_by_type: Dict[SnapshotType, int] = field(default_factory=dict)
    dry_run: bool = False


@dataclass
class CleanupResult:
    """Report of a cleanup pass."""
    total_snapshots: int = 0
    kept: int = 0
    deleted: int = 0
    deleted_ids: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_snapshots": self.total_snapshots,
            "kept": self.kept,
            "deleted": self.deleted,
            "deleted_ids": list(self.deleted_ids),
            "errors": list(self.errors),
            "dry_run": self.dry_run,
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        verb = "Would delete" if self.dry_run else "Deleted"
        lines = [
            "Cleanup Report",
            f"  Dry run: {self.dry_run}",
            f"  Total snapshots: {self.total_snapshots}",
            f"  Kept: {self.kept}",
            f"  {verb}: {self.deleted}",
        ]
        lines.extend(f"    {snapshot_id}" for snapshot_id in self.deleted_ids)
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            lines.extend(f"    {error}" for error in self.errors)
        return "\n".join(lines)


def select_by_count(snapshots: List[Snapshot], keep_count: int) -> List[str]:
    """Ids beyond the newest keep_count (snapshots must be newest first)."""
    if keep_count >= len(snapshots):
        return []
    return [s.id for s in snapshots[keep_count:]]


def select_by_age(snapshots: List[Snapshot], keep_after: datetime) -> List[str]:
    """Ids of snapshots strictly older than keep_after."""
    cutoff = ensure_utc(keep_after)
    return [s.id for s in snapshots if s.timestamp < cutoff]


def select_by_type(
    snapshots: List[Snapshot],
    keep_by_type: Dict[SnapshotType, int],
    fallback_count: int = 0,
) -> List[str]:
    """Apply a keep count to each snapshot type independently."""
    limits = {SnapshotType(k): v for k, v in keep_by_type.items()}

    grouped: Dict[SnapshotType, List[Snapshot]] = {}
    for snapshot in snapshots:
        grouped.setdefault(SnapshotType(snapshot.type), []).append(snapshot)

    to_delete = []
    for snapshot_type in SnapshotType:
        group = grouped.get(snapshot_type)
        if not group:
            continue
        if snapshot_type in limits:
            keep = limits[snapshot_type]
        elif fallback_count > 0:
            keep = fallback_count
        else:
            continue
        to_delete.extend(select_by_count(group, keep))
    return to_delete


class RetentionManager:
    """
    Prunes snapshots from a SnapshotStore according to a retention policy.

    The deletion set is computed the same way with or without dry_run, so
    a dry run reports exactly what a real run would delete.
    """

    def __init__(
        self,
        store: SnapshotStore,
        default_keep_by_type: Optional[Dict[SnapshotType, int]] = None,
        default_keep_count: int = 0,
    ):
        """
        Initialize the manager.

        Args:
            store: Store whose snapshots are pruned
            default_keep_by_type: Per-type limits used by auto_cleanup()
            default_keep_count: auto_cleanup() limit for types missing from
                default_keep_by_type (0 leaves them alone)
        """
        self.store = store
        if default_keep_by_type is None:
            default_keep_by_type = DEFAULT_KEEP_BY_TYPE
        self.default_keep_by_type = dict(default_keep_by_type)
        self.default_keep_count = default_keep_count

    def plan(self, snapshots: List[Snapshot], options: CleanupOptions) -> List[str]:
        """
        Compute the ids a cleanup with these options would delete.

        Raises:
            ValidationError: No retention criterion was supplied
        """
        if options.keep_by_type:
            return select_by_type(snapshots, options.keep_by_type, options.keep_count)
        if options.keep_count > 0:
            return select_by_count(snapshots, options.keep_count)
        if options.keep_after is not None:
            return select_by_age(snapshots, options.keep_after)
        raise ValidationError("no cleanup criteria specified")

    def cleanup(self, options: CleanupOptions, cancel: Optional[CancelToken] = None) -> CleanupResult:
        """
        Run one cleanup pass.

        Individual delete failures are recorded in result.errors and do
        not stop the remaining deletions.

        Raises:
            ValidationError: No retention criterion was supplied
        """
        with LogContext(operation="cleanup", state_dir=str(self.store.state_dir)):
            logger.info("Starting snapshot cleanup")

            snapshots = self.store.list(cancel=cancel)
            to_delete = self.plan(snapshots, options)

            result = CleanupResult(
                total_snapshots=len(snapshots),
                deleted=len(to_delete),
                kept=len(snapshots) - len(to_delete),
                deleted_ids=list(to_delete),
                dry_run=options.dry_run,
            )

            if not options.dry_run:
                for snapshot_id in to_delete:
                    try:
                        self.store.delete(snapshot_id, cancel=cancel)
                    except CancelledError:
                        raise
                    except StateError as e:
                        message = f"failed to delete snapshot {snapshot_id}: {e}"
                        result.errors.append(message)
                        logger.warning(message)

            logger.info(
                f"Cleanup completed: kept {result.kept}, deleted {result.deleted} "
                f"(dry_run={result.dry_run})"
            )
            return result

    def cleanup_by_age(self, max_age: timedelta, dry_run: bool = False) -> CleanupResult:
        """Delete snapshots older than max_age."""
        return self.cleanup(CleanupOptions(keep_after=utc_now() - max_age, dry_run=dry_run))

    def cleanup_by_count(self, keep_count: int, dry_run: bool = False) -> CleanupResult:
        """Keep only the keep_count newest snapshots."""
        return self.cleanup(CleanupOptions(keep_count=keep_count, dry_run=dry_run))

    def auto_cleanup(self, dry_run: bool = False) -> CleanupResult:
        """Apply the default per-type limits."""
        logger.info("Running auto-cleanup with default policies")
        return self.cleanup(
            CleanupOptions(
                keep_by_type=dict(self.default_keep_by_type),
                keep_count=self.default_keep_count,
                dry_run=dry_run,
            )
        )
