"""Configuration models for pomojam.

This module defines the pydantic models persisted in ``config.json``:
timer durations, group-session client tuning, the local relay listener and
the log file.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_GROUP_SERVER = "https://pomodoro-jam.treepo1.partykit.dev"


class PomodoroSettings(BaseModel):
    """Timer durations."""

    work_duration: int = Field(default=25, ge=1, description="Minutes")
    short_break_duration: int = Field(default=5, ge=1, description="Minutes")
    long_break_duration: int = Field(default=15, ge=1, description="Minutes")
    pomodoros_before_long_break: int = Field(default=4, ge=1)


class GroupConfig(BaseModel):
    """Group session client configuration."""

    server: str = Field(default=DEFAULT_GROUP_SERVER, description="Relay origin")
    participant_name: str = Field(default="", description="Default display name")
    state_sync_interval: float = Field(default=1.0, gt=0, description="Seconds")
    connection_timeout: float = Field(default=10.0, gt=0, description="Seconds")
    max_reconnect_attempts: int = Field(default=5, ge=0)
    reconnect_delay_base: float = Field(default=1.0, gt=0, description="Seconds")

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        """Fall back to the public relay when the origin is blank."""
        v = v.strip()
        return v or DEFAULT_GROUP_SERVER


class RelayConfig(BaseModel):
    """Local relay server configuration."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=1999, ge=0, le=65535)


class LogConfig(BaseModel):
    """Log file settings. ``--verbose`` overrides the level for one run."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    max_file_mb: int = Field(default=5, ge=1)
    backup_count: int = Field(default=3, ge=0)


class AppConfig(BaseModel):
    """Main pomojam configuration"""

    pomodoro: PomodoroSettings = Field(default_factory=PomodoroSettings)
    group: GroupConfig = Field(default_factory=GroupConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    log: LogConfig = Field(default_factory=LogConfig)
