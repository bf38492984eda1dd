"""
Pytest fixtures and test configuration for HomeXpert tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from homexpert.engagement import EngagementConfig, RecordingEventSink, build_engagement
from homexpert.engagement.storage import InMemoryEngagementStorage
from homexpert.types import Actor


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Monday 2 March 2026, 09:00 UTC."""
    return ManualClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return InMemoryEngagementStorage()


@pytest.fixture
def config():
    return EngagementConfig()


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def engagement(config, storage, events, clock):
    """A fully wired coordinator over in-memory storage and a manual clock."""
    return build_engagement(config, storage=storage, event_sink=events, now_fn=clock)


@pytest.fixture
def ledger(engagement):
    return engagement.ledger


@pytest.fixture
def engine(engagement):
    return engagement.engine


@pytest.fixture
def contracts(engagement):
    return engagement.contracts


@pytest.fixture
def household():
    return Actor.household("household-a")


@pytest.fixture
def other_household():
    return Actor.household("household-b")


@pytest.fixture
def househelp():
    return Actor.househelp("househelp-w")


@pytest.fixture
def make_request(engine, household, househelp):
    """Create a hire request from ``household`` to ``househelp`` with sane defaults."""

    def _make(actor=None, househelp_id=None, **overrides):
        kwargs = {
            "job_type": "live-in",
            "salary_offered": 15000,
            "salary_frequency": "monthly",
            "terms_accepted": True,
        }
        kwargs.update(overrides)
        return engine.create(
            actor or household,
            househelp_id or househelp.actor_id,
            **kwargs,
        )

    return _make
