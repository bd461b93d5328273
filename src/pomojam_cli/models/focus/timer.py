"""Pomodoro timer engine: a work/short-break/long-break cycle."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from pomojam_cli.models.focus.state import PomodoroState, SessionKind

TICK_SECONDS = 1.0


@dataclass
class PomodoroConfig:
    """Configuration for Pomodoro cycling."""

    work_duration: int = 25  # minutes
    short_break_duration: int = 5  # minutes
    long_break_duration: int = 15  # minutes
    pomodoros_before_long_break: int = 4

    def duration_seconds(self, session: SessionKind) -> int:
        """Get duration in seconds for a session kind."""
        if session == "work":
            return self.work_duration * 60
        elif session == "shortBreak":
            return self.short_break_duration * 60
        else:  # longBreak
            return self.long_break_duration * 60


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS."""
    mins, secs = divmod(max(0, seconds), 60)
    return f"{mins:02d}:{secs:02d}"


def session_label(session: SessionKind) -> str:
    """Human-readable label for a session kind."""
    return {
        "work": "Work",
        "shortBreak": "Short Break",
        "longBreak": "Long Break",
    }[session]


class Pomodoro:
    """Countdown engine owning the authoritative local timer state.

    The countdown runs as an asyncio task calling :meth:`tick` once per second.
    In group mode (participant of a group session) the engine never counts
    down by itself; its state only changes through :meth:`set_state`.
    """

    def __init__(
        self,
        config: PomodoroConfig | None = None,
        *,
        tick_seconds: float = TICK_SECONDS,
    ):
        self.config = config or PomodoroConfig()
        self.tick_seconds = tick_seconds
        self._state = PomodoroState(
            current_session="work",
            time_remaining=self.config.duration_seconds("work"),
            is_running=False,
            completed_pomodoros=0,
        )
        self._group_mode = False
        self._ticker: asyncio.Task | None = None

        self.on_tick: Callable[[PomodoroState], None] | None = None
        self.on_session_complete: Callable[[SessionKind], None] | None = None

    # State access

    def get_state(self) -> PomodoroState:
        """Return a copy of the current state."""
        return self._state.model_copy()

    def set_state(self, state: PomodoroState) -> None:
        """Overwrite the state wholesale (participants applying host state)."""
        self._state = state.model_copy()
        if self._group_mode:
            self._stop_ticker()
        self._notify()

    @property
    def is_group_mode(self) -> bool:
        return self._group_mode

    def set_group_mode(self, enabled: bool) -> None:
        """Enable or disable participant mode.

        Enabling stops the local countdown. Disabling resumes it when the
        current state says the timer is running, so a promoted participant
        carries on from the last state it received.
        """
        self._group_mode = enabled
        if enabled:
            self._stop_ticker()
        elif self._state.is_running:
            self._start_ticker()

    # Controls

    def start(self) -> None:
        if self._state.is_running:
            return
        self._state.is_running = True
        self._start_ticker()
        self._notify()

    def pause(self) -> None:
        if not self._state.is_running:
            return
        self._state.is_running = False
        self._stop_ticker()
        self._notify()

    def reset(self) -> None:
        self.pause()
        self._state.time_remaining = self.config.duration_seconds(
            self._state.current_session
        )
        self._notify()

    def skip(self) -> None:
        self._stop_ticker()
        self._state.is_running = False
        self._complete_session()

    def stop(self) -> None:
        """Clean shutdown: stop the countdown and drop callbacks."""
        self._stop_ticker()
        self._state.is_running = False
        self.on_tick = None
        self.on_session_complete = None

    def tick(self) -> None:
        """Advance the countdown by one second."""
        if self._group_mode or not self._state.is_running:
            return

        self._state.time_remaining -= 1
        if self._state.time_remaining <= 0:
            self._complete_session()
            return
        self._notify()

    # Internals

    def _complete_session(self) -> None:
        completed = self._state.current_session
        if self.on_session_complete:
            self.on_session_complete(completed)

        if completed == "work":
            self._state.completed_pomodoros += 1
            if (
                self._state.completed_pomodoros
                % self.config.pomodoros_before_long_break
                == 0
            ):
                self._state.current_session = "longBreak"
            else:
                self._state.current_session = "shortBreak"
        else:
            self._state.current_session = "work"

        self._state.time_remaining = self.config.duration_seconds(
            self._state.current_session
        )
        self._state.is_running = False
        self._stop_ticker()
        self._notify()

    def _start_ticker(self) -> None:
        if self._group_mode or (self._ticker and not self._ticker.done()):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: state still changes, ticking is up to the caller
            return
        self._ticker = loop.create_task(self._run())

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker and not ticker.done() and ticker is not _current_task():
            ticker.cancel()

    async def _run(self) -> None:
        me = asyncio.current_task()
        while True:
            await asyncio.sleep(self.tick_seconds)
            if self._ticker is not me:
                return
            self.tick()

    def _notify(self) -> None:
        if self.on_tick:
            self.on_tick(self.get_state())


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
