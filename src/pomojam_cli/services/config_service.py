"""Configuration service for managing pomojam configuration.

This module provides the ConfigService class, which is the single source of truth
for configuration management. It handles:

- Loading and saving config.json
- Dotted-key lookups and updates (``group.server``, ``pomodoro.work_duration``)
- Config file initialization with sensible defaults
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir
from pydantic import BaseModel, ValidationError

from pomojam_cli.models.config_models import AppConfig


class ConfigService:
    """Service for managing application configuration.

    The configuration lives in a single JSON file under the platform config
    directory. It is loaded lazily and cached on the instance.
    """

    def __init__(self):
        """Initialize the config service."""

        self.config_dir = Path(user_config_dir("pomojam_cli"))
        self.config_path = self.config_dir / "config.json"

        # Ensure directories exist
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        """Get or load the current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self) -> AppConfig:
        """Load configuration from storage."""
        if self._config is not None:
            return self._config  # Return cached config if already loaded

        try:
            with open(self.config_path, encoding="utf-8") as f:
                self._config = AppConfig.model_validate_json(f.read())
        except FileNotFoundError:
            # First run: write defaults
            self._config = AppConfig()
            self.save_config()
        except Exception as e:
            raise RuntimeError(f"Failed to load config: {e}") from e

        return self._config

    def save_config(self):
        """Save the current configuration to storage."""
        if self._config is None:
            raise RuntimeError("No configuration to save")

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(self._config.model_dump_json(indent=4))
        except Exception as e:
            raise RuntimeError(f"Failed to save config: {e}") from e

    def reset_config(self, key: str | None = None):
        """Reset the whole configuration, or a single dotted key, to defaults."""
        if key is None:
            self._config = AppConfig()
        else:
            default_value = self._lookup(AppConfig(), key)
            if default_value is None:
                raise KeyError(key)
            self.set(key, default_value)
            return
        self.save_config()

    def get(self, key: str) -> Any:
        """Get a configuration value by dot-separated key."""
        return self._lookup(self.config, key)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-separated key.

        Raises:
            KeyError: If the key does not name an existing setting
            ValueError: If the value fails validation
        """
        if self._lookup(self.config, key) is None:
            raise KeyError(key)

        keys = key.split(".")
        config_dict = self.config.model_dump()

        current = config_dict
        for k in keys[:-1]:
            current = current[k]
        current[keys[-1]] = value

        try:
            self._config = AppConfig.model_validate(config_dict)
        except ValidationError as e:
            raise ValueError(f"Invalid value for '{key}': {value!r}") from e
        self.save_config()

    @staticmethod
    def _lookup(config: AppConfig, key: str) -> Any:
        value: Any = config
        for k in key.split("."):
            if isinstance(value, BaseModel) and k in type(value).model_fields:
                value = getattr(value, k)
            else:
                return None
        return value


@lru_cache(maxsize=1)
def get_config_service() -> ConfigService:
    """Get a cached ConfigService instance."""
    config_service = ConfigService()
    config_service.load_config()
    return config_service
