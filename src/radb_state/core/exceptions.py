"""
Custom exceptions for the local state layer.

Callers are expected to tell NotFoundError (expected absence) apart from
IntegrityError (possible corruption); the two demand different responses.
"""


class StateError(Exception):
    """Base exception for all state layer errors."""
    pass


class ValidationError(StateError):
    """
    A snapshot or request was malformed before anything touched disk.

    Raised when:
    - Snapshot id, timestamp or type is missing
    - Snapshot type does not match its payload
    - A collection contains duplicate identity keys
    - Cleanup is requested without any retention criterion
    """

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or []


class LockTimeoutError(StateError):
    """The state directory lock could not be acquired in time."""

    def __init__(self, message: str, lock_path: str = None, timeout: float = None):
        super().__init__(message)
        self.lock_path = lock_path
        self.timeout = timeout


class NotFoundError(StateError):
    """A snapshot (or other object) addressed by id does not exist."""

    def __init__(self, message: str, object_id: str = None):
        super().__init__(message)
        self.object_id = object_id


class IntegrityError(StateError):
    """
    Stored data failed its checksum verification.

    The contents must be treated as untrustworthy and discarded.
    """

    def __init__(
        self,
        message: str,
        snapshot_id: str = None,
        expected: str = None,
        actual: str = None,
    ):
        super().__init__(message)
        self.snapshot_id = snapshot_id
        self.expected = expected
        self.actual = actual


class StorageError(StateError):
    """
    Filesystem failure while reading or writing state.

    Raised when:
    - The state directory cannot be created or read
    - A snapshot or changelog write fails (disk full, permissions)
    - An atomic rename fails
    """

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class ParseError(StateError):
    """
    Stored JSON is corrupt or has an unexpected shape.

    Recoverable during bulk scans (the item is skipped), fatal for a
    single targeted load.
    """

    def __init__(self, message: str, path: str = None, line: int = None):
        super().__init__(message)
        self.path = path
        self.line = line


class CancelledError(StateError):
    """The caller cancelled the operation while it was waiting."""
    pass


class ConfigError(StateError):
    """
    Error in state layer configuration.

    Raised when:
    - Configuration file is missing or invalid YAML
    - A value has the wrong type or is out of range
    """
    pass
