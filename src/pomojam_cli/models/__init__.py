"""Data models for pomojam."""

from pomojam_cli.models.config_models import (
    AppConfig,
    GroupConfig,
    LogConfig,
    PomodoroSettings,
    RelayConfig,
)

__all__ = ["AppConfig", "GroupConfig", "LogConfig", "PomodoroSettings", "RelayConfig"]
