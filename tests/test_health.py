# tests/test_health.py
from typing import Generator

import pytest
from fastapi.testclient import TestClient  # Use FastAPI's TestClient

from uesgm_portal.core.config import Settings
from uesgm_portal.main import app, create_app
from uesgm_portal.utils.error_handler import MisconfiguredKeyError


@pytest.fixture(scope="module")
def default_client() -> Generator[TestClient, None, None]:
    """Reusable TestClient for the module-level app."""
    with TestClient(app) as c:
        yield c


def test_health_status(default_client: TestClient) -> None:
    res = default_client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_health_content_type(default_client: TestClient) -> None:
    res = default_client.get("/health")
    assert res.headers["content-type"].startswith("application/json")


def test_startup_builds_security_state(default_client: TestClient) -> None:
    state = default_client.app.state
    assert state.cipher.decrypt(state.cipher.encrypt("ok")) == "ok"
    assert state.pin_verifier.configured
    assert state.attempt_tracker.threshold == 5


def test_startup_fails_without_encryption_key() -> None:
    broken = create_app(Settings(ENCRYPTION_KEY=None, ENABLE_METRICS=False))
    with pytest.raises(MisconfiguredKeyError):
        with TestClient(broken):
            pass
