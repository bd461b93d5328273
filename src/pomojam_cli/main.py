"""Main entry point for pomojam."""

import typer

from pomojam_cli import __version__
from pomojam_cli.commands import config, group, relay
from pomojam_cli.models.config_models import LogConfig
from pomojam_cli.services.config_service import get_config_service
from pomojam_cli.utils.logger import configure_logging
from pomojam_cli.utils.ui.formatters import console

app = typer.Typer(
    name="pomojam",
    help="Pomodoro timer with shared group sessions",
    no_args_is_help=True,
)


# Add subcommands
app.add_typer(group.app, name="group", help="Host or join a group session")
app.add_typer(relay.app, name="relay", help="Run a group session relay")
app.add_typer(config.app, name="config", help="Configuration management")


@app.callback()
def setup(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Also print debug logs to stderr"
    ),
) -> None:
    try:
        log_config = get_config_service().config.log
    except RuntimeError:
        # The command itself reports the unreadable config file
        log_config = LogConfig()
    configure_logging(
        log_config.level,
        verbose=verbose,
        max_bytes=log_config.max_file_mb * 1024 * 1024,
        backup_count=log_config.backup_count,
    )


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]pomojam[/bold] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
