"""Pytest configuration and fixtures."""
import logging

import pytest


def pytest_configure(config):
    """Ensure asyncio_mode is auto so async fixtures work when pyproject is not in cwd."""
    if hasattr(config.option, "asyncio_mode") and config.option.asyncio_mode is None:
        config.option.asyncio_mode = "auto"
    logging.getLogger("httpcore").setLevel(logging.CRITICAL)


@pytest.fixture
def anyio_backend():
    return "asyncio"
