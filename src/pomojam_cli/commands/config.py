"""Configuration management commands."""

from typing import Optional

import typer

from pomojam_cli.services.config_service import get_config_service
from pomojam_cli.utils.ui.formatters import (
    console,
    format_error,
    format_output,
    format_success,
)

app = typer.Typer(help="Configuration management commands")


@app.command("view")
def view_config(
    output: str = typer.Option("table", "--output", "-o", help="table, json or yaml"),
) -> None:
    """View current configuration."""
    try:
        format_output(get_config_service().config.model_dump(), output)
    except Exception as e:
        format_error(f"Failed to view config: {str(e)}")
        raise typer.Exit(1)


@app.command("get")
def get_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., group.server)"),
) -> None:
    """Get a configuration value."""
    value = get_config_service().get(key)
    if value is None:
        format_error(f"Configuration key '{key}' not found")
        raise typer.Exit(1)
    console.print(value)


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., group.server)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value."""
    # Try to convert value to appropriate type
    parsed_value: str | int | bool = value
    if value.lower() in ("true", "false"):
        parsed_value = value.lower() == "true"
    elif value.isdigit():
        parsed_value = int(value)

    try:
        get_config_service().set(key, parsed_value)
    except KeyError:
        format_error(f"Configuration key '{key}' not found")
        raise typer.Exit(1)
    except (ValueError, RuntimeError) as e:
        format_error(f"Failed to set config: {str(e)}")
        raise typer.Exit(1)
    format_success(f"Configuration '{key}' set to '{parsed_value}'")


@app.command("reset")
def reset_config(
    key: Optional[str] = typer.Argument(None, help="Configuration key to reset"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Reset configuration to defaults."""
    if not yes:
        msg = "entire configuration" if not key else f"'{key}'"
        confirm = typer.confirm(f"Are you sure you want to reset {msg}?")
        if not confirm:
            format_error("Cancelled")
            raise typer.Exit(0)

    try:
        get_config_service().reset_config(key)
    except KeyError:
        format_error(f"Configuration key '{key}' not found")
        raise typer.Exit(1)
    except RuntimeError as e:
        format_error(f"Failed to reset config: {str(e)}")
        raise typer.Exit(1)

    if key:
        format_success(f"Configuration '{key}' reset to default")
    else:
        format_success("Configuration reset to defaults")
