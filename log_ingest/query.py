"""Query engine: validates submissions and filters, sorts, and counts on read."""

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from log_ingest.errors import InvalidLevel, InvalidRecord, InvalidTimestamp
from log_ingest.models import LEVELS, LogRecord, parse_timestamp, truncate_to_millis
from log_ingest.storage import LogStore

# Exact-match string predicates: LogFilter attribute == LogRecord attribute.
_EXACT_FIELDS = ("level", "resource_id", "trace_id", "span_id", "commit")

# HTTP query parameter -> LogFilter attribute.
_PARAM_NAMES = {
    "level": "level",
    "message": "message",
    "resourceId": "resource_id",
    "traceId": "trace_id",
    "spanId": "span_id",
    "commit": "commit",
}


def parse_bound(value: str) -> datetime:
    """Parse a lenient ISO 8601 range bound. Naive values are taken as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidTimestamp(value, str(exc)) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class LogFilter:
    level: str | None = None
    message: str | None = None
    resource_id: str | None = None
    trace_id: str | None = None
    span_id: str | None = None
    commit: str | None = None
    timestamp_start: datetime | None = None
    timestamp_end: datetime | None = None

    @classmethod
    def from_params(cls, params: Mapping) -> "LogFilter":
        """Build a filter from HTTP-style query parameters.

        Empty values are dropped. Raises InvalidLevel for an illegal level and
        InvalidTimestamp for an unparseable range bound.
        """
        kwargs = {}
        for param, attr in _PARAM_NAMES.items():
            value = params.get(param)
            if value:
                kwargs[attr] = value
        if "level" in kwargs and kwargs["level"] not in LEVELS:
            raise InvalidLevel(kwargs["level"], LEVELS)
        for bound in ("timestamp_start", "timestamp_end"):
            value = params.get(bound)
            if value:
                kwargs[bound] = parse_bound(value)
        return cls(**kwargs)

    def predicates(self) -> list[Callable[[LogRecord], bool]]:
        """One callable per supplied condition. Empty strings count as absent."""
        predicates = []
        for attr in _EXACT_FIELDS:
            wanted = getattr(self, attr)
            if wanted:
                predicates.append(lambda record, a=attr, w=wanted: getattr(record, a) == w)
        if self.message:
            needle = self.message.lower()
            predicates.append(lambda record: needle in record.message.lower())
        if self.timestamp_start is not None:
            start = self.timestamp_start
            predicates.append(lambda record: record.timestamp >= start)
        if self.timestamp_end is not None:
            end = self.timestamp_end
            predicates.append(lambda record: record.timestamp <= end)
        return predicates


class QueryEngine:
    def __init__(self, store: LogStore, clock: Callable[[], datetime] | None = None):
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def submit(self, candidate: Mapping) -> LogRecord:
        """Validate a candidate record, resolve its timestamp, and persist it."""
        level = candidate.get("level")
        if level not in LEVELS:
            raise InvalidLevel(level, LEVELS)

        message = candidate.get("message")
        if not isinstance(message, str):
            raise InvalidRecord("message", "must be a string")
        if not message.strip():
            raise InvalidRecord("message", "cannot be empty")
        for key in ("resourceId", "traceId", "spanId", "commit"):
            if not isinstance(candidate.get(key), str):
                raise InvalidRecord(key, "must be a string")

        # A missing, null, or empty timestamp is resolved to the acceptance time.
        raw_ts = candidate.get("timestamp")
        if raw_ts is None or raw_ts == "":
            timestamp = truncate_to_millis(self._clock().astimezone(timezone.utc))
        else:
            timestamp = parse_timestamp(raw_ts)

        metadata = candidate.get("metadata")
        record = LogRecord(
            level=level,
            message=message,
            resource_id=candidate["resourceId"],
            timestamp=timestamp,
            trace_id=candidate["traceId"],
            span_id=candidate["spanId"],
            commit=candidate["commit"],
            metadata=metadata if metadata is not None else {},
        )
        return self._store.append(record)

    def query(self, filters: LogFilter | None = None) -> list[LogRecord]:
        """Records matching every supplied predicate, most recent first."""
        records = self._store.read_all()
        if filters is not None:
            predicates = filters.predicates()
            if predicates:
                records = [r for r in records if all(p(r) for p in predicates)]
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    def count(self) -> int:
        return len(self._store.read_all())

    def count_by_level(self) -> dict[str, int]:
        """Tally per level. Levels with no records are omitted."""
        return dict(Counter(r.level for r in self._store.read_all()))

    def stats(self, now: datetime | None = None) -> dict:
        records = self._store.read_all()
        now = now or self._clock()
        by_level = dict(Counter(r.level for r in records))
        total = len(records)
        cutoff = now - timedelta(hours=24)
        recent = sum(1 for r in records if r.timestamp > cutoff)
        error_rate = round(by_level.get("error", 0) / total * 100, 2) if total else 0
        return {
            "totalLogs": total,
            "logsByLevel": by_level,
            "recentActivity": {
                "last24Hours": recent,
                "errorRate": error_rate,
            },
        }

    def reset(self) -> None:
        self._store.reset()
