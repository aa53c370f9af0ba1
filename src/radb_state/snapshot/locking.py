"""
Advisory locking for a state directory.

One sentinel file (<state-dir>/.lock) guards every snapshot read and write.
Acquisition is bounded by a timeout and polled in short slices so that a
CancelToken can interrupt the wait.
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from filelock import FileLock, Timeout

from ..core.exceptions import LockTimeoutError, StorageError
from ..core.utils import CancelToken, check_cancelled

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".lock"
DEFAULT_LOCK_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.05


class DirectoryLock:
    """
    Cooperative lock on a state directory.

    Threads in one process exclude each other (each thread gets its own
    lock context) as do separate processes. Reads and writes take the same
    lock; there is no shared mode.
    """

    def __init__(
        self,
        state_dir: Path,
        timeout: float = DEFAULT_LOCK_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize the lock.

        Args:
            state_dir: Directory the lock protects (must exist)
            timeout: Default seconds to wait before giving up
            poll_interval: Seconds between acquisition attempts
        """
        self.path = Path(state_dir) / LOCK_FILENAME
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._lock = FileLock(str(self.path), thread_local=True)

    @property
    def is_locked(self) -> bool:
        """True if the calling thread currently holds the lock."""
        return self._lock.is_locked

    def acquire(
        self,
        operation: str,
        cancel: Optional[CancelToken] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Block until the lock is held, the timeout passes, or cancel fires.

        Raises:
            LockTimeoutError: Lock not acquired within the timeout
            CancelledError: The token was cancelled while waiting
            StorageError: The lock file could not be opened
        """
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        while True:
            check_cancelled(cancel, f"{operation} (waiting for lock)")
            wait = max(0.0, min(self.poll_interval, deadline - time.monotonic()))
            try:
                self._lock.acquire(timeout=wait, poll_interval=0.01)
                return
            except Timeout:
                if time.monotonic() >= deadline:
                    logger.warning(f"Timed out after {timeout}s waiting for {self.path} ({operation})")
                    raise LockTimeoutError(
                        f"could not acquire lock for {operation}: timeout after {timeout}s",
                        lock_path=str(self.path),
                        timeout=timeout,
                    ) from None
            except OSError as e:
                raise StorageError(f"failed to open lock file: {e}", path=str(self.path)) from e

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(
        self,
        operation: str,
        cancel: Optional[CancelToken] = None,
        timeout: Optional[float] = None,
    ) -> Iterator["DirectoryLock"]:
        """
        Context manager holding the lock for the duration of the block.

        The lock is released on every exit path, including exceptions.
        """
        self.acquire(operation, cancel=cancel, timeout=timeout)
        try:
            yield self
        finally:
            self.release()
