"""Pytest configuration and fixtures."""

import os
import secrets

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from app.database import get_engagement  # noqa: E402
from app.main import app  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from homexpert.engagement import EngagementConfig, RecordingEventSink, build_engagement  # noqa: E402

HOUSEHOLD_ID = "hh_TEST_ONLY_001"
OTHER_HOUSEHOLD_ID = "hh_TEST_ONLY_002"
HOUSEHELP_ID = "hp_TEST_ONLY_001"


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def engagement(events):
    """A fresh in-memory engagement coordinator per test."""
    return build_engagement(EngagementConfig(), event_sink=events)


@pytest.fixture
def client(engagement):
    """Create a test client wired to the per-test coordinator."""
    app.dependency_overrides[get_engagement] = lambda: engagement
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_engagement, None)


@pytest.fixture
def make_headers():
    """Build auth headers for an actor ID and role."""
    from app.auth import create_access_token
    from app.config import get_settings

    def _make(actor_id: str, role: str) -> dict:
        token = create_access_token(actor_id, role, get_settings())
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def household_headers(make_headers):
    return make_headers(HOUSEHOLD_ID, "household")


@pytest.fixture
def other_household_headers(make_headers):
    return make_headers(OTHER_HOUSEHOLD_ID, "household")


@pytest.fixture
def househelp_headers(make_headers):
    return make_headers(HOUSEHELP_ID, "househelp")
