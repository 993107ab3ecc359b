# tests/conftest.py
"""
Shared fixtures for GoalCore tests.

Provides a controllable clock, a goal factory and pre-initialized
storage and service instances.
"""

from datetime import datetime, timedelta, timezone

import pytest

from goalcore.models import Goal
from goalcore.service import GoalService
from goalcore.storage import InMemoryGoalStorage

# Friday, mid-month, midday UTC.
START = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def start():
    return START


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_goal():
    """Factory for Goal objects anchored at START."""

    def _make(**overrides) -> Goal:
        fields = {
            "user_id": "user-1",
            "name": "Read pages",
            "unit": "pages",
            "target": 10,
            "timeframe": "weekly",
            "current_period_start": START,
            "last_reset": START,
            "created": START,
            "updated": START,
        }
        fields.update(overrides)
        return Goal(**fields)

    return _make


@pytest.fixture
async def memory_storage():
    storage = InMemoryGoalStorage()
    await storage.initialize()
    yield storage
    await storage.close()


@pytest.fixture
def service(memory_storage, clock):
    """GoalService over in-memory storage with a controllable clock."""
    return GoalService(memory_storage, clock=clock)
