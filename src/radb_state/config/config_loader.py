"""
Configuration loader for the state layer.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from ..core.exceptions import ConfigError
from ..models import FORMAT_VERSION, SnapshotType
from ..snapshot.locking import DEFAULT_LOCK_TIMEOUT, DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = Path.home() / ".radb-client" / "state"

ENV_STATE_DIR = "RADB_STATE_DIR"
ENV_LOCK_TIMEOUT = "RADB_LOCK_TIMEOUT"
ENV_LOG_LEVEL = "RADB_LOG_LEVEL"


class StateConfig:
    """
    Configuration for the local state layer.

    Values come from, in increasing priority: built-in defaults, an
    optional YAML file, then RADB_* environment variables (a .env file is
    loaded first; variables already set in the shell win over it).
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_file: Optional[Path] = None,
        load_env: bool = True,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
            env_file: Explicit .env file (default: search from the cwd)
            load_env: Set False to skip .env loading entirely
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._default_config()
        if self.config_path:
            _merge(self.config, self._load_config())
        if load_env:
            load_dotenv(dotenv_path=env_file, override=False)
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError(f"Config root must be a mapping: {self.config_path}")
        return config

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "state": {
                "dir": str(DEFAULT_STATE_DIR),
                "lock_timeout_seconds": DEFAULT_LOCK_TIMEOUT,
                "lock_poll_interval_seconds": DEFAULT_POLL_INTERVAL,
                "format_version": FORMAT_VERSION,
            },
            "logging": {
                "level": "INFO",
                "structured": False,
            },
            "retention": {
                "keep_by_type": {
                    "route": 30,
                    "contact": 10,
                    "full": 5,
                },
                "keep_count": 0,
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        state_dir = os.environ.get(ENV_STATE_DIR)
        if state_dir:
            self.config.setdefault("state", {})["dir"] = state_dir

        lock_timeout = os.environ.get(ENV_LOCK_TIMEOUT)
        if lock_timeout:
            self.config.setdefault("state", {})["lock_timeout_seconds"] = lock_timeout

        log_level = os.environ.get(ENV_LOG_LEVEL)
        if log_level:
            self.config.setdefault("logging", {})["level"] = log_level

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, e.g. 'state.dir'."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    @property
    def state_dir(self) -> Path:
        return Path(str(self.get("state.dir", DEFAULT_STATE_DIR))).expanduser()

    @property
    def lock_timeout(self) -> float:
        return self._positive_float("state.lock_timeout_seconds", DEFAULT_LOCK_TIMEOUT)

    @property
    def lock_poll_interval(self) -> float:
        return self._positive_float("state.lock_poll_interval_seconds", DEFAULT_POLL_INTERVAL)

    @property
    def format_version(self) -> int:
        version = self._int("state.format_version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ConfigError(
                f"Unsupported state.format_version {version} (supported: {FORMAT_VERSION})"
            )
        return version

    @property
    def log_level(self) -> str:
        return str(self.get("logging.level", "INFO")).upper()

    @property
    def structured_logging(self) -> bool:
        value = self.get("logging.structured", False)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    @property
    def keep_count(self) -> int:
        count = self._int("retention.keep_count", 0)
        if count < 0:
            raise ConfigError(f"retention.keep_count must be >= 0, got {count}")
        return count

    @property
    def keep_by_type(self) -> Dict[SnapshotType, int]:
        """
        Per-type keep counts.

        A type set to null is unlisted, so retention.keep_count applies to it.
        """
        raw = self.get("retention.keep_by_type", {})
        if not isinstance(raw, dict):
            raise ConfigError("retention.keep_by_type must be a mapping")

        limits = {}
        for name, count in raw.items():
            try:
                snapshot_type = SnapshotType(str(name))
            except ValueError:
                raise ConfigError(f"Unknown snapshot type in retention.keep_by_type: {name}")
            if count is None:
                continue
            try:
                limits[snapshot_type] = int(count)
            except (TypeError, ValueError):
                raise ConfigError(f"retention.keep_by_type.{name} must be an integer, got {count!r}")
            if limits[snapshot_type] < 0:
                raise ConfigError(f"retention.keep_by_type.{name} must be >= 0")
        return limits

    def _int(self, key: str, default: int) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer, got {value!r}")

    def _positive_float(self, key: str, default: float) -> float:
        value = self.get(key, default)
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be a number, got {value!r}")
        if number <= 0:
            raise ConfigError(f"{key} must be positive, got {number}")
        return number


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base in place."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
