"""Group session commands: host or join a shared timer."""

import asyncio

import typer

from pomojam_cli.group.manager import DEFAULT_PARTICIPANT_NAME, SessionManager
from pomojam_cli.group.messages import ConnectionState, Participant
from pomojam_cli.group.session_code import (
    generate_session_code,
    normalize_session_code,
    validate_session_code,
)
from pomojam_cli.models.config_models import AppConfig
from pomojam_cli.models.focus.state import PomodoroState
from pomojam_cli.models.focus.timer import Pomodoro, PomodoroConfig
from pomojam_cli.services.config_service import get_config_service
from pomojam_cli.utils.exit_codes import ERROR_INVALID_ARGS, ERROR_NETWORK
from pomojam_cli.utils.ui.formatters import (
    connection_indicator,
    console,
    format_participants,
    format_success,
    format_timer_line,
)

from .decorators import AppError, command_wrapper

app = typer.Typer(help="Host or join a shared group timer")


class SessionView:
    """Prints group session events as they happen."""

    def __init__(self, pomodoro: Pomodoro):
        self.pomodoro = pomodoro
        self.manager: SessionManager | None = None
        self.failed = asyncio.Event()
        self._last_shown: tuple | None = None

    def connection_changed(self, state: ConnectionState) -> None:
        console.print(f"Relay: {connection_indicator(state)}")
        if state == "error":
            self.failed.set()

    def participants_changed(self, participants: list[Participant]) -> None:
        me = self.manager.participant_id if self.manager else ""
        format_participants(participants, me=me)

    def host_changed(self, is_host: bool) -> None:
        if is_host:
            console.print("[bold yellow]You are now the host[/bold yellow]")
        else:
            console.print("[dim]You are no longer the host[/dim]")

    def state_changed(self) -> None:
        self.show_timer(self.pomodoro.get_state())

    def show_timer(self, state: PomodoroState) -> None:
        # Print on phase/run changes and once a minute, not every second
        key = (state.current_session, state.is_running, state.completed_pomodoros)
        if key == self._last_shown and state.time_remaining % 60:
            return
        self._last_shown = key
        console.print(format_timer_line(state))


def _build_session(config: AppConfig) -> tuple[SessionManager, SessionView]:
    settings = config.pomodoro
    pomodoro = Pomodoro(
        PomodoroConfig(
            work_duration=settings.work_duration,
            short_break_duration=settings.short_break_duration,
            long_break_duration=settings.long_break_duration,
            pomodoros_before_long_break=settings.pomodoros_before_long_break,
        )
    )
    view = SessionView(pomodoro)
    manager = SessionManager(
        pomodoro,
        config=config.group,
        on_state_change=view.state_changed,
        on_participants_change=view.participants_changed,
        on_connection_change=view.connection_changed,
        on_host_change=view.host_changed,
    )
    view.manager = manager
    pomodoro.on_tick = lambda state: view.show_timer(state) if manager.is_host else None
    return manager, view


def _resolve_name(name: str | None, config: AppConfig) -> str:
    return (name or config.group.participant_name or DEFAULT_PARTICIPANT_NAME).strip()


async def _run_until_failure(manager: SessionManager, view: SessionView) -> None:
    try:
        await view.failed.wait()
    finally:
        await manager.disconnect()
    raise AppError(
        "Lost connection to the relay after repeated retries. Run the command again to retry.",
        exit_code=ERROR_NETWORK,
    )


@app.command("host")
@command_wrapper
async def host_session(
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    server: str | None = typer.Option(None, "--server", "-s", help="Relay origin"),
    start: bool = typer.Option(False, "--start", help="Start the timer right away"),
) -> None:
    """Host a group session and share its code."""
    config = get_config_service().config
    manager, view = _build_session(config)

    code = await manager.start_hosting(_resolve_name(name, config), server)
    console.print(f"\nSession code: [bold cyan]{code}[/bold cyan]")
    console.print(f"[dim]Share it with others: pomojam group join {code}[/dim]\n")
    if start:
        manager.send_control("start")

    await _run_until_failure(manager, view)


@app.command("join")
@command_wrapper
async def join_session(
    code: str = typer.Argument(..., help="Session code, e.g. XYZ234"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    server: str | None = typer.Option(None, "--server", "-s", help="Relay origin"),
) -> None:
    """Join a group session by code."""
    if not validate_session_code(normalize_session_code(code)):
        raise AppError(
            f"'{code}' is not a valid session code (3 consonants + 3 digits, e.g. XYZ234)",
            exit_code=ERROR_INVALID_ARGS,
        )

    config = get_config_service().config
    manager, view = _build_session(config)

    await manager.join_session(code, _resolve_name(name, config), server)
    console.print(f"\nJoined [bold cyan]{manager.session_code}[/bold cyan]\n")

    await _run_until_failure(manager, view)


@app.command("code")
@command_wrapper
def session_code(
    check: str | None = typer.Option(None, "--check", help="Validate a code instead"),
) -> None:
    """Generate a session code, or validate one with --check."""
    if check is None:
        console.print(generate_session_code())
        return

    normalized = normalize_session_code(check)
    if not validate_session_code(normalized):
        raise AppError(f"'{check}' is not a valid session code", ERROR_INVALID_ARGS)
    format_success(f"{normalized} is a valid session code")
