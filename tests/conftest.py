import os

import pytest

from log_ingest.app import create_app
from log_ingest.broadcast import LogBroadcaster
from log_ingest.config import Config
from log_ingest.query import QueryEngine
from log_ingest.storage import LogStore


@pytest.fixture
def sample_candidate():
    return {
        "level": "error",
        "message": "db down",
        "resourceId": "r1",
        "traceId": "t1",
        "spanId": "s1",
        "commit": "c1",
        "metadata": {},
    }


@pytest.fixture
def make_candidate(sample_candidate):
    """Factory for candidates with selected fields overridden."""
    def _make(**overrides):
        candidate = dict(sample_candidate)
        candidate.update(overrides)
        return candidate
    return _make


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "data" / "logs.json")


@pytest.fixture
def store(store_path):
    return LogStore(store_path, lock_timeout=0.5)


@pytest.fixture
def engine(store):
    return QueryEngine(store)


@pytest.fixture
def config(store_path):
    cfg = Config()
    cfg["storage"]["path"] = store_path
    cfg["storage"]["lock_timeout_seconds"] = 0.5
    return cfg


@pytest.fixture
def broadcaster():
    return LogBroadcaster(queue_size=10)


@pytest.fixture
def app(config, broadcaster):
    """Create a Flask test app backed by a temporary store."""
    application = create_app(config, broadcaster=broadcaster)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("CONFIG_PATH", "HOST", "PORT", "STORAGE_PATH", "LOCK_TIMEOUT_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return os.environ
