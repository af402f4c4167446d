"""Global pytest configuration."""

import logging

import pytest

from core.logging import LOGGER_NAMESPACE

pytest_plugins = ["tests.fixtures.registry"]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the per-user app directory at a temporary folder."""
    home = tmp_path / "winclone_home"
    monkeypatch.setenv("WINCLONE_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Close handlers installed by configure_logging between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
