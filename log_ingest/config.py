import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas", "log_entry.schema.json")

# Environment variable -> (section, key, cast)
ENV_OVERRIDES = {
    "HOST": ("server", "host", str),
    "PORT": ("server", "port", int),
    "STORAGE_PATH": ("storage", "path", str),
    "LOCK_TIMEOUT_SECONDS": ("storage", "lock_timeout_seconds", float),
    "LOG_LEVEL": ("logging", "level", str),
}


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "server": {
            "host": "0.0.0.0",
            "port": 3001,
            "debug": False,
        },
        "storage": {
            "path": "./data/logs.json",
            "lock_timeout_seconds": 5.0,
        },
        "stream": {
            "queue_size": 100,
            "keepalive_seconds": 15,
        },
        "schema": {
            "path": SCHEMA_PATH,
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, config_path=None, environ=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
            except FileNotFoundError:
                pass
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

        if environ is not None:
            self._apply_env(environ)

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def _apply_env(self, environ):
        for name, (section, key, cast) in ENV_OVERRIDES.items():
            raw = environ.get(name)
            if raw is None or raw == "":
                continue
            try:
                self._config.setdefault(section, {})[key] = cast(raw)
            except ValueError:
                logger.warning("Ignoring %s=%r: not a valid %s", name, raw, cast.__name__)

    def get(self, key, default=None):
        """Get a top-level config key."""
        return self._config.get(key, default)

    def __getitem__(self, key):
        return self._config[key]

    def __contains__(self, key):
        return key in self._config


def load_config() -> Config:
    """Config from the YAML file at CONFIG_PATH, with environment overrides."""
    return Config(os.environ.get("CONFIG_PATH", "config.yaml"), environ=os.environ)
