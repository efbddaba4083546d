import pytest

from log_ingest.config import SCHEMA_PATH
from log_ingest.validator import LogValidator


@pytest.fixture
def validator():
    return LogValidator(SCHEMA_PATH)


class TestLogValidator:
    def test_valid_entry(self, validator, sample_candidate):
        is_valid, errors = validator.validate(sample_candidate)
        assert is_valid
        assert errors == []

    def test_valid_entry_with_timestamp(self, validator, make_candidate):
        is_valid, _ = validator.validate(make_candidate(timestamp="2024-01-15T10:30:00.000Z"))
        assert is_valid

    def test_missing_required_fields(self, validator):
        is_valid, errors = validator.validate({"level": "info", "message": "hello"})
        assert not is_valid
        assert any("resourceId" in e for e in errors)
        assert any("metadata" in e for e in errors)

    def test_illegal_level(self, validator, make_candidate):
        is_valid, errors = validator.validate(make_candidate(level="fatal"))
        assert not is_valid
        assert any("level" in e for e in errors)

    def test_blank_message(self, validator, make_candidate):
        assert not validator.validate(make_candidate(message=""))[0]
        assert not validator.validate(make_candidate(message="   "))[0]

    def test_metadata_must_be_object(self, validator, make_candidate):
        assert not validator.validate(make_candidate(metadata=["a"]))[0]
        assert not validator.validate(make_candidate(metadata=None))[0]

    def test_wrong_types(self, validator, make_candidate):
        assert not validator.validate(make_candidate(traceId=123))[0]
        assert not validator.validate(make_candidate(timestamp=1705314600))[0]

    @pytest.mark.parametrize("body", [None, {}, [], "text"])
    def test_empty_or_non_object_body(self, validator, body):
        is_valid, errors = validator.validate(body)
        assert not is_valid
        assert errors == ["Request body is required"]

    def test_stats_tracking(self, validator, sample_candidate):
        validator.validate(sample_candidate)
        validator.validate({"level": "info"})
        stats = validator.get_stats()
        assert stats["total"] == 2
        assert stats["valid"] == 1
        assert stats["invalid"] == 1
        assert stats["error_types"]["required"] >= 1

    def test_reset_stats(self, validator, sample_candidate):
        validator.validate(sample_candidate)
        validator.reset_stats()
        assert validator.get_stats()["total"] == 0
