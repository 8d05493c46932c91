"""Shared fixtures: an adjustable clock and an in-memory repository."""
from datetime import datetime

import pytest

from booking_core.repository import InMemorySlotStore, SlotRepository

# Saturday before the first working week used throughout the tests
NOW = datetime(2024, 6, 1, 8, 0)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySlotStore()


@pytest.fixture
def repo(store, clock):
    return SlotRepository(store, clock=clock, allow_past=False)
