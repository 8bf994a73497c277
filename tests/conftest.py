"""Shared pytest fixtures for veto test suites."""

from collections.abc import Generator
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def reset_validation_settings() -> Generator[None, None, None]:
    """Reload environment-driven settings for every test."""
    from veto.core.config import get_validation_settings

    get_validation_settings.cache_clear()
    yield
    get_validation_settings.cache_clear()
