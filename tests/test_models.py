"""Tests for log_ingest/models.py"""

import unittest
from datetime import datetime, timedelta, timezone

from log_ingest.errors import InvalidTimestamp
from log_ingest.models import (
    LEVELS,
    LogRecord,
    format_timestamp,
    parse_timestamp,
    truncate_to_millis,
)


def _record(**overrides) -> LogRecord:
    fields = dict(
        level="info",
        message="Server started",
        resource_id="server-1234",
        timestamp=datetime(2023, 9, 15, 8, 0, 0, tzinfo=timezone.utc),
        trace_id="abc-xyz-123",
        span_id="span-456",
        commit="5e5342f",
        metadata={"parentResourceId": "server-0987"},
    )
    fields.update(overrides)
    return LogRecord(**fields)


class TestFormatTimestamp(unittest.TestCase):
    def test_millisecond_precision_with_z(self):
        ts = datetime(2024, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
        self.assertEqual(format_timestamp(ts), "2024-01-15T10:30:00.123Z")

    def test_converts_offset_to_utc(self):
        ts = datetime(2024, 1, 15, 12, 30, 0, tzinfo=timezone(timedelta(hours=2)))
        self.assertEqual(format_timestamp(ts), "2024-01-15T10:30:00.000Z")

    def test_pads_small_years(self):
        ts = datetime(999, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        self.assertEqual(format_timestamp(ts), "0999-01-02T03:04:05.000Z")


class TestParseTimestamp(unittest.TestCase):
    def test_canonical_round_trip(self):
        for value in ("2024-01-15T10:30:00.000Z", "1999-12-31T23:59:59.999Z", "2024-02-29T00:00:00.001Z"):
            self.assertEqual(format_timestamp(parse_timestamp(value)), value)

    def test_parsed_value_is_utc(self):
        ts = parse_timestamp("2024-01-15T10:30:00.250Z")
        self.assertEqual(ts, datetime(2024, 1, 15, 10, 30, 0, 250000, tzinfo=timezone.utc))

    def test_rejects_missing_milliseconds(self):
        with self.assertRaises(InvalidTimestamp):
            parse_timestamp("2024-01-15T10:30:00Z")

    def test_rejects_offset_form(self):
        with self.assertRaises(InvalidTimestamp):
            parse_timestamp("2024-01-15T10:30:00.000+00:00")

    def test_rejects_impossible_date(self):
        with self.assertRaises(InvalidTimestamp):
            parse_timestamp("2023-02-30T10:30:00.000Z")

    def test_rejects_garbage_and_non_strings(self):
        for value in ("yesterday", "", 1705314600000, None):
            with self.assertRaises(InvalidTimestamp):
                parse_timestamp(value)

    def test_error_carries_value(self):
        with self.assertRaises(InvalidTimestamp) as ctx:
            parse_timestamp("not-a-date")
        self.assertEqual(ctx.exception.value, "not-a-date")


class TestTruncateToMillis(unittest.TestCase):
    def test_drops_sub_millisecond_digits(self):
        ts = datetime(2024, 1, 15, 10, 30, 0, 123987, tzinfo=timezone.utc)
        self.assertEqual(truncate_to_millis(ts).microsecond, 123000)


class TestLogRecord(unittest.TestCase):
    def test_levels(self):
        self.assertEqual(LEVELS, ("error", "warn", "info", "debug"))

    def test_to_dict_uses_wire_keys(self):
        data = _record().to_dict()
        self.assertEqual(
            list(data),
            ["level", "message", "resourceId", "timestamp", "traceId", "spanId", "commit", "metadata"],
        )
        self.assertEqual(data["timestamp"], "2023-09-15T08:00:00.000Z")
        self.assertEqual(data["metadata"], {"parentResourceId": "server-0987"})

    def test_from_dict_rebuilds_equal_record(self):
        record = _record()
        self.assertEqual(LogRecord.from_dict(record.to_dict()), record)

    def test_frozen(self):
        record = _record()
        with self.assertRaises(AttributeError):
            record.level = "error"

    def test_from_dict_rejects_illegal_level(self):
        data = _record().to_dict()
        data["level"] = "fatal"
        with self.assertRaises(ValueError):
            LogRecord.from_dict(data)

    def test_from_dict_rejects_missing_field(self):
        data = _record().to_dict()
        del data["traceId"]
        with self.assertRaises(ValueError):
            LogRecord.from_dict(data)

    def test_from_dict_rejects_bad_timestamp(self):
        data = _record().to_dict()
        data["timestamp"] = "2023-09-15"
        with self.assertRaises(ValueError):
            LogRecord.from_dict(data)

    def test_from_dict_rejects_non_object(self):
        with self.assertRaises(ValueError):
            LogRecord.from_dict(["level", "info"])


if __name__ == "__main__":
    unittest.main()
