"""Shared fixtures for integration tests.

These talk to the real CMS and SAMHSA feeds. Storage stays in memory so a
run never writes to a shared database.
"""

from typing import Any

import pytest

from regwatch.config import load_settings


@pytest.fixture
def live_settings() -> Any:
    """Settings from the environment / .env file, with real feed URLs."""
    return load_settings()
