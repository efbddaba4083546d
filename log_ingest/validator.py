import json
import threading
from collections import defaultdict

import jsonschema


class LogValidator:
    """Validates inbound log entry bodies against a JSON schema."""

    def __init__(self, schema_path):
        with open(schema_path, "r") as f:
            schema = json.load(f)

        self._validator = jsonschema.Draft202012Validator(schema)
        self._lock = threading.Lock()
        self._stats = self._empty_stats()

    @staticmethod
    def _empty_stats():
        return {
            "total": 0,
            "valid": 0,
            "invalid": 0,
            "error_types": defaultdict(int),
        }

    def validate(self, log_entry):
        """Validate a log entry body against the schema.

        Returns:
            tuple: (is_valid: bool, errors: list[str])
        """
        if not isinstance(log_entry, dict) or not log_entry:
            errors = ["Request body is required"]
            with self._lock:
                self._stats["total"] += 1
                self._stats["invalid"] += 1
                self._stats["error_types"]["required"] += 1
            return False, errors

        errors = sorted(self._validator.iter_errors(log_entry), key=lambda e: [str(p) for p in e.path])

        with self._lock:
            self._stats["total"] += 1
            if not errors:
                self._stats["valid"] += 1
                return True, []
            self._stats["invalid"] += 1
            for error in errors:
                self._stats["error_types"][error.validator] += 1

        return False, [_describe(error) for error in errors]

    def get_stats(self):
        """Return a copy of the stats dict."""
        with self._lock:
            stats = dict(self._stats)
            stats["error_types"] = dict(stats["error_types"])
        return stats

    def reset_stats(self):
        with self._lock:
            self._stats = self._empty_stats()


def _describe(error):
    if error.path:
        return f'Field "{error.path[-1]}": {error.message}'
    return error.message
