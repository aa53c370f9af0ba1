"""
Explicit wiring of the state layer components.

    config = StateConfig(Path("radb.yaml"))
    services = StateServices.from_config(config)
    snapshot = services.store.capture(source, SnapshotType.ROUTE)
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import StateConfig
from .core.logging import LogContext, configure_logging
from .core.utils import CancelToken
from .diff import DiffEngine
from .history import ChangeLog
from .models import ChangeSet, Snapshot
from .retention import RetentionManager
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class StateServices:
    """The four state components sharing one state directory and lock."""
    store: SnapshotStore
    engine: DiffEngine
    changelog: ChangeLog
    retention: RetentionManager

    @classmethod
    def from_config(
        cls,
        config: Optional[StateConfig] = None,
        setup_logging: bool = True,
    ) -> "StateServices":
        """
        Build every component from configuration.

        Args:
            config: Loaded configuration (default: StateConfig())
            setup_logging: Also configure the package logger from config
        """
        config = config or StateConfig()

        if setup_logging:
            configure_logging(level=config.log_level, structured=config.structured_logging)

        # Fails fast on an unsupported on-disk format
        config.format_version

        store = SnapshotStore(
            config.state_dir,
            lock_timeout=config.lock_timeout,
            lock_poll_interval=config.lock_poll_interval,
        )
        engine = DiffEngine()
        changelog = ChangeLog(config.state_dir, lock=store.lock)
        retention = RetentionManager(
            store,
            default_keep_by_type=config.keep_by_type,
            default_keep_count=config.keep_count,
        )

        logger.debug(f"State services ready at {config.state_dir}")
        return cls(store=store, engine=engine, changelog=changelog, retention=retention)

    def record_changes(
        self,
        from_snapshot: Snapshot,
        to_snapshot: Snapshot,
        cancel: Optional[CancelToken] = None,
    ) -> ChangeSet:
        """
        Diff two snapshots and append the resulting changes to the changelog.

        Returns:
            The change set that was appended (possibly empty)
        """
        with LogContext(operation="record_changes", snapshot_id=to_snapshot.id):
            change_set = self.engine.compute_changes(from_snapshot, to_snapshot)
            self.changelog.append(change_set, cancel=cancel)
            return change_set
