"""Timer engine used by solo and group sessions."""

from pomojam_cli.models.focus.state import PomodoroState, SessionKind
from pomojam_cli.models.focus.timer import (
    Pomodoro,
    PomodoroConfig,
    format_time,
    session_label,
)

__all__ = [
    "Pomodoro",
    "PomodoroConfig",
    "PomodoroState",
    "SessionKind",
    "format_time",
    "session_label",
]
