"""Log record model and the canonical timestamp codec."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from log_ingest.errors import InvalidTimestamp

LEVELS = ("error", "warn", "info", "debug")

# Offset zero, millisecond precision: 2024-01-15T10:30:00.000Z
TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})\.(\d{3})Z$"
)

# Wire key -> attribute name, in persisted field order.
_STRING_FIELDS = (
    ("message", "message"),
    ("resourceId", "resource_id"),
    ("traceId", "trace_id"),
    ("spanId", "span_id"),
    ("commit", "commit"),
)


def format_timestamp(ts: datetime) -> str:
    """Serialize an aware datetime to the canonical UTC form."""
    ts = ts.astimezone(timezone.utc)
    return (
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"
        f"T{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}.{ts.microsecond // 1000:03d}Z"
    )


def parse_timestamp(value: str) -> datetime:
    """Parse a canonical timestamp string.

    Raises InvalidTimestamp unless ``value`` is exactly the string that
    format_timestamp would produce for the parsed instant.
    """
    if not isinstance(value, str):
        raise InvalidTimestamp(value, "not a string")
    match = TIMESTAMP_PATTERN.match(value)
    if not match:
        raise InvalidTimestamp(value)
    year, month, day, hour, minute, second, millis = (int(g) for g in match.groups())
    try:
        ts = datetime(year, month, day, hour, minute, second, millis * 1000, tzinfo=timezone.utc)
    except ValueError as exc:
        raise InvalidTimestamp(value, str(exc)) from exc
    if format_timestamp(ts) != value:
        raise InvalidTimestamp(value, "does not round-trip")
    return ts


def truncate_to_millis(ts: datetime) -> datetime:
    return ts.replace(microsecond=ts.microsecond - ts.microsecond % 1000)


@dataclass(frozen=True)
class LogRecord:
    level: str
    message: str
    resource_id: str
    timestamp: datetime
    trace_id: str
    span_id: str
    commit: str
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Persisted/wire shape with camelCase keys."""
        return {
            "level": self.level,
            "message": self.message,
            "resourceId": self.resource_id,
            "timestamp": format_timestamp(self.timestamp),
            "traceId": self.trace_id,
            "spanId": self.span_id,
            "commit": self.commit,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LogRecord":
        """Rebuild a record from its persisted shape.

        Raises ValueError when the shape breaks a record invariant.
        """
        if not isinstance(data, dict):
            raise ValueError(f"record must be an object, got {type(data).__name__}")
        level = data.get("level")
        if level not in LEVELS:
            raise ValueError(f"illegal level {level!r}")
        values = {}
        for key, attr in _STRING_FIELDS:
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"field {key!r} must be a string")
            values[attr] = value
        try:
            timestamp = parse_timestamp(data.get("timestamp"))
        except InvalidTimestamp as exc:
            raise ValueError(str(exc)) from exc
        return cls(
            level=level,
            timestamp=timestamp,
            metadata=data.get("metadata", {}),
            **values,
        )
