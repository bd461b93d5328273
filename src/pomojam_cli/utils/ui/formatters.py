"""Output formatters for different formats."""

import json
from typing import Any

import yaml
from rich.console import Console
from rich.table import Table

from pomojam_cli.group.messages import ConnectionState, Participant
from pomojam_cli.models.focus.state import PomodoroState
from pomojam_cli.models.focus.timer import format_time, session_label

console = Console()

CONNECTION_INDICATORS: dict[str, tuple[str, str]] = {
    "disconnected": ("○", "dim"),
    "connecting": ("◐", "yellow"),
    "connected": ("●", "green"),
    "error": ("✗", "red"),
}


def format_output(data: Any, output_format: str = "table") -> None:
    """Format and display output based on format."""
    if output_format == "json":
        print(json.dumps(data, indent=2, default=str))
    elif output_format == "yaml":
        print(yaml.dump(data, default_flow_style=False, sort_keys=False))
    else:
        format_single_item(data)


def _flatten(item: dict, prefix: str = "") -> dict:
    flat: dict = {}
    for key, value in item.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


def format_single_item(item: dict) -> None:
    """Format a (possibly nested) dict as dotted key-value pairs."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")

    for key, value in _flatten(item).items():
        if isinstance(value, bool):
            formatted_value = "✓" if value else "✗"
        elif value is None or value == "":
            formatted_value = "-"
        else:
            formatted_value = str(value)
        table.add_row(key, formatted_value)

    console.print(table)


def format_error(message: str) -> None:
    """Format and display an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def format_success(message: str) -> None:
    """Format and display a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


# ============================================================================
# Group session rendering
# ============================================================================


def connection_indicator(state: ConnectionState) -> str:
    """Colored symbol plus label for a connection state."""
    symbol, color = CONNECTION_INDICATORS.get(state, ("?", "white"))
    return f"[{color}]{symbol} {state}[/{color}]"


def format_timer_line(state: PomodoroState) -> str:
    """One-line timer summary, e.g. ``Work 24:59 ▶ (2 done)``."""
    status = "▶" if state.is_running else "⏸"
    return (
        f"[bold]{session_label(state.current_session)}[/bold] "
        f"{format_time(state.time_remaining)} {status} "
        f"[dim]({state.completed_pomodoros} done)[/dim]"
    )


def format_participants(participants: list[Participant], me: str = "") -> None:
    """Print the roster with the host and this client marked."""
    if not participants:
        console.print("[yellow]No participants yet[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("ID", style="dim")

    for index, participant in enumerate(participants, start=1):
        name = participant.name
        if participant.id == me:
            name = f"{name} [dim](you)[/dim]"
        role = "[yellow]host[/yellow]" if participant.is_host else "participant"
        table.add_row(str(index), name, role, participant.id)

    console.print(table)
