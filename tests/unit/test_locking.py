"""
Unit tests for the state directory lock.
"""

import threading
import time

import pytest

from radb_state.core.exceptions import CancelledError, LockTimeoutError
from radb_state.core.utils import CancelToken
from radb_state.snapshot.locking import LOCK_FILENAME, DirectoryLock


def hold_in_thread(lock: DirectoryLock, acquired: threading.Event, release: threading.Event):
    """Take the lock from another thread until `release` is set."""
    def run():
        with lock.hold("holder"):
            acquired.set()
            release.wait(5)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    assert acquired.wait(5)
    return thread


class TestDirectoryLock:
    """Tests for DirectoryLock."""

    def test_hold_and_release(self, state_dir):
        lock = DirectoryLock(state_dir, timeout=0.5)

        with lock.hold("test"):
            assert lock.is_locked
            assert (state_dir / LOCK_FILENAME).exists()
        assert not lock.is_locked

    def test_released_on_exception(self, state_dir):
        lock = DirectoryLock(state_dir, timeout=0.5)

        with pytest.raises(RuntimeError):
            with lock.hold("test"):
                raise RuntimeError("boom")
        assert not lock.is_locked

    def test_reentrant_in_same_thread(self, state_dir):
        lock = DirectoryLock(state_dir, timeout=0.2)

        with lock.hold("outer"):
            with lock.hold("inner"):
                assert lock.is_locked
            assert lock.is_locked
        assert not lock.is_locked

    def test_timeout_while_held_elsewhere(self, state_dir):
        """Test a second thread times out instead of blocking forever."""
        lock = DirectoryLock(state_dir, timeout=0.2, poll_interval=0.02)
        acquired, release = threading.Event(), threading.Event()
        thread = hold_in_thread(lock, acquired, release)

        try:
            start = time.monotonic()
            with pytest.raises(LockTimeoutError) as exc_info:
                lock.acquire("contender")
            assert time.monotonic() - start >= 0.2
            assert exc_info.value.timeout == 0.2
            assert exc_info.value.lock_path.endswith(LOCK_FILENAME)
        finally:
            release.set()
            thread.join(5)

    def test_second_lock_object_excluded(self, state_dir):
        """Test two locks on the same directory exclude each other."""
        holder = DirectoryLock(state_dir, timeout=0.2)
        contender = DirectoryLock(state_dir, timeout=0.1, poll_interval=0.02)
        acquired, release = threading.Event(), threading.Event()
        thread = hold_in_thread(holder, acquired, release)

        try:
            with pytest.raises(LockTimeoutError):
                contender.acquire("contender")
        finally:
            release.set()
            thread.join(5)

        with contender.hold("after release"):
            assert contender.is_locked

    def test_cancel_while_waiting(self, state_dir):
        """Test cancellation interrupts a long wait."""
        lock = DirectoryLock(state_dir, timeout=10, poll_interval=0.02)
        acquired, release = threading.Event(), threading.Event()
        thread = hold_in_thread(lock, acquired, release)
        cancel = CancelToken()
        timer = threading.Timer(0.1, cancel.cancel)
        timer.start()

        try:
            start = time.monotonic()
            with pytest.raises(CancelledError):
                lock.acquire("contender", cancel=cancel)
            assert time.monotonic() - start < 5
        finally:
            timer.cancel()
            release.set()
            thread.join(5)

    def test_already_cancelled_token(self, state_dir):
        lock = DirectoryLock(state_dir)
        cancel = CancelToken()
        cancel.cancel()

        with pytest.raises(CancelledError):
            with lock.hold("test", cancel=cancel):
                pass
        assert not lock.is_locked


class TestCancelToken:
    """Tests for CancelToken."""

    def test_deadline(self):
        token = CancelToken(timeout=0.0)
        assert token.cancelled

    def test_not_cancelled_by_default(self):
        token = CancelToken()
        assert not token.cancelled
        token.raise_if_cancelled()
