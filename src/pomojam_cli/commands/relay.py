"""Relay server commands."""

import asyncio

import typer

from pomojam_cli.relay.server import RelayServer
from pomojam_cli.services.config_service import get_config_service
from pomojam_cli.utils.exit_codes import ERROR_NETWORK
from pomojam_cli.utils.ui.formatters import format_success

from .decorators import AppError, command_wrapper

app = typer.Typer(help="Run a group session relay")


@app.command("serve")
@command_wrapper
async def serve_relay(
    host: str | None = typer.Option(None, "--host", help="Interface to bind"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on"),
) -> None:
    """Run a relay until interrupted."""
    config = get_config_service().config.relay
    host = host or config.host
    port = config.port if port is None else port

    relay = RelayServer()
    try:
        await relay.start(host, port)
    except OSError as e:
        raise AppError(f"Cannot listen on {host}:{port}: {e}", ERROR_NETWORK) from e

    format_success(f"Relay listening on ws://{host}:{relay.port}")
    try:
        await asyncio.Future()
    finally:
        await relay.stop()
