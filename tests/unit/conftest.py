"""Shared test fixtures."""

import pytest

from browser_journey.core.storage.repository import VisitRepository
from browser_journey.core.tracking.ingestor import EventIngestor
from tests.unit.fakes import FakeClock, FakeStore, FakeTabs


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def repository(store: FakeStore) -> VisitRepository:
    return VisitRepository(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tabs() -> FakeTabs:
    return FakeTabs()


@pytest.fixture
def ingestor(repository: VisitRepository, clock: FakeClock, tabs: FakeTabs) -> EventIngestor:
    return EventIngestor(repository, tabs=tabs, clock=clock)
