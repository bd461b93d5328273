"""Decorators for command functions."""

import asyncio
import functools
import inspect
import time
import traceback
from collections.abc import Callable

import typer

from pomojam_cli.utils.exit_codes import (
    ERROR_GENERAL,
    SUCCESS,
    get_exit_code_description,
    get_exit_code_name,
)
from pomojam_cli.utils.logger import get_logger
from pomojam_cli.utils.ui.formatters import console, format_error


class AppError(Exception):
    """Custom application error with exit code."""

    def __init__(self, message: str, exit_code: int = ERROR_GENERAL):
        super().__init__(message)
        self.exit_code = exit_code


def command_wrapper(_func: Callable | None = None):
    """Decorator to wrap command functions with common functionality."""

    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger()
            cmd = func.__name__
            start = time.monotonic()
            logger.info("command started: %s", cmd)
            try:
                if inspect.iscoroutinefunction(func):
                    result = asyncio.run(func(*args, **kwargs))
                else:
                    result = func(*args, **kwargs)

                elapsed = time.monotonic() - start
                logger.info("command completed: %s (%.3fs)", cmd, elapsed)
                return result

            except AppError as e:
                elapsed = time.monotonic() - start
                logger.error(
                    "command failed: %s (%.3fs) - %s [%s]",
                    cmd,
                    elapsed,
                    str(e),
                    get_exit_code_name(e.exit_code),
                )
                format_error(str(e))
                console.print(f"[dim]{get_exit_code_description(e.exit_code)}[/dim]")
                raise typer.Exit(code=e.exit_code) from e

            except (typer.Exit, typer.Abort):
                raise

            except KeyboardInterrupt:
                logger.info("command interrupted: %s", cmd)
                raise typer.Exit(code=SUCCESS)

            except Exception as e:
                elapsed = time.monotonic() - start
                logger.error(
                    "command failed: %s (%.3fs) - %s\n%s",
                    cmd,
                    elapsed,
                    str(e),
                    traceback.format_exc(),
                )
                format_error(f"An unexpected error occurred: {str(e)}")
                raise typer.Exit(code=ERROR_GENERAL) from e

        return wrapper

    if _func is None:
        return decorator
    return decorator(_func)
