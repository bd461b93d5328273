"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from pomojam_cli.models.config_models import (
    DEFAULT_GROUP_SERVER,
    AppConfig,
    GroupConfig,
    LogConfig,
    PomodoroSettings,
)


class TestGroupConfig:
    def test_defaults(self):
        config = GroupConfig()
        assert config.server == DEFAULT_GROUP_SERVER
        assert config.state_sync_interval == 1.0
        assert config.connection_timeout == 10.0
        assert config.max_reconnect_attempts == 5
        assert config.reconnect_delay_base == 1.0

    def test_blank_server_falls_back(self):
        assert GroupConfig(server="   ").server == DEFAULT_GROUP_SERVER

    def test_server_is_trimmed(self):
        assert GroupConfig(server=" http://localhost:1999 ").server == "http://localhost:1999"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("state_sync_interval", 0),
            ("connection_timeout", -1),
            ("max_reconnect_attempts", -1),
            ("reconnect_delay_base", 0),
        ],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            GroupConfig(**{field: value})


class TestPomodoroSettings:
    def test_defaults(self):
        settings = PomodoroSettings()
        assert (settings.work_duration, settings.short_break_duration) == (25, 5)
        assert (settings.long_break_duration, settings.pomodoros_before_long_break) == (15, 4)

    def test_durations_must_be_positive(self):
        with pytest.raises(ValidationError):
            PomodoroSettings(work_duration=0)


class TestLogConfig:
    def test_defaults(self):
        log = LogConfig()
        assert log.level == "INFO"
        assert log.max_file_mb == 5
        assert log.backup_count == 3

    def test_rejects_unknown_level(self):
        with pytest.raises(ValidationError):
            LogConfig(level="TRACE")

    def test_rejects_zero_size(self):
        with pytest.raises(ValidationError):
            LogConfig(max_file_mb=0)

    def test_app_config_carries_log_section(self):
        assert AppConfig().log == LogConfig()


class TestAppConfig:
    def test_json_round_trip(self):
        config = AppConfig()
        config.group.participant_name = "Alice"
        restored = AppConfig.model_validate_json(config.model_dump_json())
        assert restored.group.participant_name == "Alice"
        assert restored.relay.port == 1999
