"""Error taxonomy for the log store and query engine.

Validation errors mean the caller sent something malformed and are never
retried. ``LockTimeout`` is transient contention the caller may retry with
backoff. Storage errors are environment faults surfaced for an operator.
"""


class LogIngestError(Exception):
    """Base class for every error raised by the core."""


class ValidationError(LogIngestError):
    """Caller input is malformed."""


class InvalidLevel(ValidationError):
    def __init__(self, level, allowed):
        self.level = level
        self.allowed = tuple(allowed)
        super().__init__(
            f"Invalid log level: {level}. Must be one of: {', '.join(self.allowed)}"
        )


class InvalidTimestamp(ValidationError):
    def __init__(self, value, detail=None):
        self.value = value
        msg = f"Invalid timestamp {value!r}: must be an ISO 8601 instant like 2024-01-15T10:30:00.000Z"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class InvalidRecord(ValidationError):
    def __init__(self, field, reason):
        self.field = field
        self.reason = reason
        super().__init__(f'Field "{field}" {reason}')


class LockTimeout(LogIngestError):
    """The write lock could not be acquired within the configured ceiling."""

    def __init__(self, timeout):
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s waiting for the storage write lock")


class StorageError(LogIngestError):
    """The backing file could not be read or written."""


class StorageWriteFailed(StorageError):
    def __init__(self, path, detail):
        self.path = path
        super().__init__(f"Failed to write log store {path}: {detail}")


class StorageCorrupt(StorageError):
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Log store {path} is corrupt: {reason}")


class StorageReadFailed(StorageError):
    def __init__(self, path, detail):
        self.path = path
        super().__init__(f"Failed to read log store {path}: {detail}")
