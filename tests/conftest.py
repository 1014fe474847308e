"""
Pytest configuration and fixtures.
"""

import os
from datetime import UTC, datetime

import pytest

# Set test environment
os.environ.setdefault("DIRECTORY_TENANT_ID", "contoso.onmicrosoft.com")
os.environ.setdefault("CLIENT_ID", "00000000-0000-0000-0000-000000000001")
os.environ.setdefault("CLIENT_SECRET", "test-secret")
os.environ.setdefault("USER_DOMAIN", "contoso.com")


@pytest.fixture
def now():
    """Fixed reference time for timeline assertions."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset between tests."""
    from investigator.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
