"""
Repository-level pytest configuration.

Routes loguru output to stderr at logging.level (LOGGING_LEVEL overrides)
for the whole session.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Generator

import pytest
from loguru import logger

from testsuites.api_testing.framework import ConfigLoader


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _logging_level() -> Generator[None, None, None]:
    """Route loguru to stderr at the configured level."""
    level = ConfigLoader().get("logging.level", "INFO")
    logger.remove()
    handler_id = logger.add(sys.stderr, level=str(level).upper())
    yield
    logger.remove(handler_id)
