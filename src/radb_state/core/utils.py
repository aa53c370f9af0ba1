"""
Core Utilities - Shared helpers for timestamps and cancellation.
"""

import threading
from datetime import datetime, timezone
from typing import Optional

from .exceptions import CancelledError


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """
    Render a datetime as RFC3339 text.

    Example:
        >>> format_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        '2024-01-02T03:04:05Z'
    """
    if value is None:
        return None
    text = ensure_utc(value).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse RFC3339/ISO-8601 text into an aware UTC datetime.

    Raises:
        ValueError: If the text is not a valid timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected timestamp string, got {type(value).__name__}")
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


class CancelToken:
    """
    Cooperative cancellation flag handed to blocking operations.

    Lock acquisition and streaming scans check the token between waits and
    raise CancelledError once it is set. A deadline may be attached so the
    token cancels itself after a caller-chosen timeout.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = None
        if timeout is not None:
            self._deadline = utc_now().timestamp() + timeout

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and utc_now().timestamp() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        if self.cancelled:
            raise CancelledError(f"{operation} cancelled")


def check_cancelled(cancel: Optional[CancelToken], operation: str) -> None:
    """Raise CancelledError if a token was supplied and has fired."""
    if cancel is not None:
        cancel.raise_if_cancelled(operation)
