import pytest

from orgsource.data import InMemoryEventLog, InMemorySnapshotStore
from orgsource.repositories import OrganizationRepository


@pytest.fixture
def event_log():
    return InMemoryEventLog()


@pytest.fixture
def snapshot_store():
    return InMemorySnapshotStore()


@pytest.fixture
def repository(event_log):
    return OrganizationRepository(event_log)
