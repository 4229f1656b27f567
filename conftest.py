"""
Shared pytest fixtures.

Test configuration is pushed into the environment before the package is
imported, because `uesgm_portal.core.config.settings` is built at import time.
"""

import os
import sys
from typing import Generator

import pytest

TEST_ENCRYPTION_KEY = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
TEST_SUPER_ADMIN_PIN = "482916"

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)
os.environ.setdefault("SUPER_ADMIN_PIN", TEST_SUPER_ADMIN_PIN)
# Minimum bcrypt cost keeps the suite fast
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("PIN_HASH_ROUNDS", "4")
os.environ.setdefault("LOGIN_FAILURE_DELAY_ENABLED", "false")
os.environ.setdefault("ENABLE_METRICS", "false")

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from fastapi.testclient import TestClient  # noqa: E402

from uesgm_portal.core.config import Settings  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """Settings for a fresh application with low thresholds."""
    return Settings(
        ENCRYPTION_KEY=TEST_ENCRYPTION_KEY,
        SUPER_ADMIN_PIN=TEST_SUPER_ADMIN_PIN,
        PASSWORD_HASH_ROUNDS=4,
        PIN_HASH_ROUNDS=4,
        LOGIN_ATTEMPT_THRESHOLD=3,
        LOGIN_FAILURE_DELAY_ENABLED=False,
        CONTACT_SHORT_TERM_LIMIT=2,
        ENABLE_METRICS=False,
    )


@pytest.fixture
def client(test_settings: Settings) -> Generator[TestClient, None, None]:
    """TestClient over an application built from `test_settings`."""
    from uesgm_portal.main import create_app

    with TestClient(create_app(test_settings)) as c:
        yield c
