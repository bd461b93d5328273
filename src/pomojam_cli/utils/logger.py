"""Application logging for pomojam.

Modules log through ``logging.getLogger(__name__)``. Their records propagate
to the ``pomojam_cli`` logger configured here, which writes a rotating file
under ``user_log_dir`` and, with ``--verbose``, mirrors everything to stderr
so a relay operator can watch admissions, transfers and failovers live.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

from platformdirs import user_log_dir

_APP_NAME = "pomojam_cli"
_LOG_FILE = "pomojam.log"
_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
DEFAULT_BACKUP_COUNT = 3

_logger: logging.Logger | None = None


def log_file_path() -> Path:
    return Path(user_log_dir(_APP_NAME)) / _LOG_FILE


def configure_logging(
    level: str | int = "INFO",
    *,
    verbose: bool = False,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """Set up the application logger, replacing any earlier configuration.

    ``level`` applies to the log file. ``verbose`` adds a stderr handler and
    lowers everything to DEBUG.
    """
    global _logger

    logger = logging.getLogger(_APP_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    path = log_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG if verbose else level)
    logger.addHandler(file_handler)

    if verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    logger.setLevel(logging.DEBUG if verbose else level)
    logger.propagate = False

    _logger = logger
    return _logger


def get_logger() -> logging.Logger:
    """Return the application logger, configuring defaults on first use."""
    if _logger is None:
        return configure_logging()
    return _logger
