"""Durable JSON-file log store with a timeout-bounded single-writer lock.

The whole store is one document, ``{"logs": [...]}``. Every write produces a
complete new file in the same directory and swaps it in with ``os.replace``,
so readers never need the lock and never observe a truncated file.
"""

import json
import logging
import os
import stat
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass

from log_ingest.errors import (
    LockTimeout,
    StorageCorrupt,
    StorageError,
    StorageReadFailed,
    StorageWriteFailed,
)
from log_ingest.models import LogRecord

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0


@dataclass(frozen=True)
class StorageInfo:
    exists: bool
    size_bytes: int
    log_count: int


class LogStore:
    def __init__(self, path: str, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self._path = path
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def initialize(self) -> None:
        """Create the directory and an empty store if the file is absent."""
        with self._write_lock():
            self._create_if_missing()

    def read_all(self) -> list[LogRecord]:
        """Return a fresh snapshot of every persisted record.

        A missing file is the initial state: it is recreated empty if no writer
        is busy, and an empty snapshot is returned without waiting. A file that
        exists but cannot be parsed raises StorageCorrupt.
        """
        try:
            raw = self._load()
        except FileNotFoundError:
            if self._lock.acquire(blocking=False):
                try:
                    self._create_if_missing()
                finally:
                    self._lock.release()
            return []
        records = []
        for index, item in enumerate(raw):
            try:
                records.append(LogRecord.from_dict(item))
            except ValueError as exc:
                raise StorageCorrupt(self._path, f"record {index}: {exc}") from exc
        return records

    def append(self, record: LogRecord) -> LogRecord:
        with self._write_lock():
            try:
                raw = self._load()
            except FileNotFoundError:
                self._ensure_directory()
                raw = []
            raw.append(record.to_dict())
            self._write(raw)
        return record

    def reset(self) -> None:
        """Discard every record, leaving an empty store."""
        with self._write_lock():
            self._ensure_directory()
            self._write([])

    def validate(self) -> bool:
        try:
            self.read_all()
        except StorageError:
            return False
        return True

    def info(self) -> StorageInfo:
        try:
            size = os.path.getsize(self._path)
        except OSError:
            return StorageInfo(exists=False, size_bytes=0, log_count=0)
        try:
            count = len(self._load())
        except (FileNotFoundError, StorageError):
            count = 0
        return StorageInfo(exists=True, size_bytes=size, log_count=count)

    def is_locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _write_lock(self):
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise LockTimeout(self._lock_timeout)
        try:
            yield
        finally:
            self._lock.release()

    def _directory(self) -> str:
        return os.path.dirname(os.path.abspath(self._path))

    def _load(self) -> list:
        """Read the raw record list. FileNotFoundError propagates to the caller."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise
        except OSError as exc:
            raise StorageReadFailed(self._path, exc) from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StorageCorrupt(self._path, str(exc)) from exc

        if not isinstance(data, dict) or not isinstance(data.get("logs"), list):
            raise StorageCorrupt(self._path, 'expected an object with a "logs" array')
        return data["logs"]

    def _write(self, raw: list) -> None:
        directory = self._directory()
        try:
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".logs-", suffix=".tmp")
        except OSError as exc:
            raise StorageWriteFailed(self._path, exc) from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                self._copy_mode(f.fileno())
                json.dump({"logs": raw}, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as exc:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise StorageWriteFailed(self._path, exc) from exc

    def _ensure_directory(self) -> None:
        try:
            os.makedirs(self._directory(), exist_ok=True)
        except OSError as exc:
            raise StorageWriteFailed(self._path, exc) from exc

    def _create_if_missing(self) -> None:
        """Write an empty store if the file is absent. Caller holds the lock."""
        self._ensure_directory()
        if not os.path.exists(self._path):
            self._write([])
            logger.debug("Initialized empty log store at %s", self._path)

    def _copy_mode(self, fd: int) -> None:
        # mkstemp creates 0600; keep the permissions of the file being replaced.
        try:
            mode = stat.S_IMODE(os.stat(self._path).st_mode)
        except FileNotFoundError:
            return
        os.fchmod(fd, mode)
