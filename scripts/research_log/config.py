"""
Configuration for the research log.

Settings come from three layers, later ones winning:
1. Built-in defaults (DEFAULTS)
2. A JSON file, research_log_config.json, which may set only some keys
3. RESEARCH_LOG_* environment variables (ENV_OVERRIDES)

Values are read with dot notation, e.g. config.get('research_log.debug').
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Optional

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "research_log_config.json"

DEFAULTS = {
    "research_log": {
        # False turns LogUnit.publish_to() into a no-op
        "enabled": True,
        "log_path": "~/.research_log/research_log.jsonl",
        "batch_size": 1,
        # Echo every written frame to stderr
        "debug": False,
        # Warn about out-of-order timestamps in add_log_statement()
        "check_timestamps": False,
    },
    "suggestions": {
        "ngram_size": 2,
        "max_candidates": 5,
    },
}


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


# Environment variable -> (config key, converter)
ENV_OVERRIDES = {
    "RESEARCH_LOG_ENABLED": ("research_log.enabled", _parse_bool),
    "RESEARCH_LOG_PATH": ("research_log.log_path", str),
    "RESEARCH_LOG_BATCH_SIZE": ("research_log.batch_size", int),
    "RESEARCH_LOG_DEBUG": ("research_log.debug", _parse_bool),
    "RESEARCH_LOG_CHECK_TIMESTAMPS": ("research_log.check_timestamps", _parse_bool),
}


def _merge(target: dict, source: dict):
    """Recursively merge source into target (modified in place)."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


class ResearchLogConfig:
    """
    Singleton holding the research log settings.

    Usage:
        from research_log.config import config

        log_path = config.get('research_log.log_path')
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._values = None
        return cls._instance

    def load(self, config_path: Optional[Path] = None):
        """
        Build settings from defaults, config file and environment.

        Args:
            config_path: JSON file to read (default: RESEARCH_LOG_CONFIG
                or config/research_log_config.json)
        """
        if config_path is None:
            config_path = Path(os.environ.get("RESEARCH_LOG_CONFIG", DEFAULT_CONFIG_PATH))

        values = copy.deepcopy(DEFAULTS)

        if config_path.exists():
            try:
                with open(config_path) as f:
                    _merge(values, json.load(f))
            except (OSError, ValueError) as e:
                print(f"Warning: Failed to load config from {config_path}: {e}")

        for env_name, (key, convert) in ENV_OVERRIDES.items():
            if env_name not in os.environ:
                continue
            try:
                self._assign(values, key, convert(os.environ[env_name]))
            except ValueError as e:
                print(f"Warning: Ignoring {env_name}: {e}")

        self._values = values

    reload = load

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting with dot notation.

        Args:
            key: Setting key (e.g., "research_log.debug")
            default: Returned when the key is missing or None

        Returns:
            Setting value or default
        """
        if self._values is None:
            self.load()

        value = self._values
        for part in key.split('.'):
            if not isinstance(value, dict):
                return default
            value = value.get(part)

        return default if value is None else value

    def set(self, key: str, value: Any):
        """
        Set a setting for this process only (not persisted).

        Args:
            key: Setting key (dot notation)
            value: Value to set
        """
        if self._values is None:
            self.load()
        self._assign(self._values, key, value)

    @staticmethod
    def _assign(values: dict, key: str, value: Any):
        *parents, leaf = key.split('.')
        for part in parents:
            values = values.setdefault(part, {})
        values[leaf] = value


# Singleton instance for import
config = ResearchLogConfig()
config.load()
