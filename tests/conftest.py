"""Shared test fixtures and configuration.

Provides infrastructure to isolate tests from the real config and log
directories.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path):
    """Send config and log files to *tmp_path* and reset cached singletons."""
    import pomojam_cli.utils.logger as logger_mod
    from pomojam_cli.services.config_service import get_config_service

    config_dir = tmp_path / "config"
    log_dir = tmp_path / "logs"

    get_config_service.cache_clear()
    logger_mod._logger = None
    logging.getLogger("pomojam_cli").handlers.clear()

    with patch(
        "pomojam_cli.services.config_service.user_config_dir",
        return_value=str(config_dir),
    ):
        with patch("pomojam_cli.utils.logger.user_log_dir", return_value=str(log_dir)):
            yield tmp_path

    get_config_service.cache_clear()
    app_logger = logging.getLogger("pomojam_cli")
    for handler in app_logger.handlers:
        handler.close()
    app_logger.handlers.clear()
    app_logger.propagate = True
    logger_mod._logger = None


@pytest.fixture()
def tmp_config():
    """Provide a real ConfigService backed by the isolated directory."""
    from pomojam_cli.services.config_service import ConfigService

    return ConfigService()
