"""Timer snapshot shared between the local engine and the group wire format."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SessionKind = Literal["work", "shortBreak", "longBreak"]


class PomodoroState(BaseModel):
    """Full timer snapshot.

    Field names are snake_case in Python and camelCase on the wire
    (``currentSession``, ``timeRemaining``, ``isRunning``, ``completedPomodoros``).
    """

    model_config = ConfigDict(populate_by_name=True)

    current_session: SessionKind = Field(default="work", alias="currentSession")
    time_remaining: int = Field(default=25 * 60, ge=0, alias="timeRemaining")
    is_running: bool = Field(default=False, alias="isRunning")
    completed_pomodoros: int = Field(default=0, ge=0, alias="completedPomodoros")
