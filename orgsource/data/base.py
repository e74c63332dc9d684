"""
Storage interfaces for the event log and state snapshots
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from orgsource.events import DomainEvent
from orgsource.models.organization import OrganizationState


class EventLog(ABC):
    """Append-only, per-organization ordered event storage."""

    def __enter__(self) -> 'EventLog':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        pass

    @abstractmethod
    def append(self, entity_id: str, expected_version: int, events: Sequence[DomainEvent]) -> int:
        """
        Append ``events`` if the stream of ``entity_id`` is still at ``expected_version``.

        Returns the new stream version.

        Raises:
            ConcurrencyConflict: If the stream moved past ``expected_version``.
        """

    @abstractmethod
    def read(self, entity_id: str, from_version: int = 0) -> List[DomainEvent]:
        """Events of ``entity_id`` with a version greater than ``from_version``, in version order."""

    @abstractmethod
    def read_all(self) -> List[DomainEvent]:
        """Every event in the log, in append order."""

    @abstractmethod
    def current_version(self, entity_id: str) -> int:
        """Version of the last event of ``entity_id``, 0 if it has none."""

    def check_batch(self, entity_id: str, expected_version: int, events: Sequence[DomainEvent]):
        """
        Raises:
            ValueError: If ``events`` do not belong to ``entity_id`` or do not
                continue from ``expected_version`` without gaps.
        """
        for offset, event in enumerate(events, start=1):
            if event.entity_id != entity_id:
                raise ValueError(f"Event {event.event_id} belongs to {event.entity_id}, not {entity_id}")
            if event.version != expected_version + offset:
                raise ValueError(
                    f"Event {event.event_id} has version {event.version}, "
                    f"expected {expected_version + offset}")


class SnapshotStore(ABC):
    """Latest folded state per organization."""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[OrganizationState]:
        """Latest snapshot of ``entity_id`` or None."""

    @abstractmethod
    def save(self, state: OrganizationState):
        """Store ``state`` unless a newer snapshot of the same organization exists."""
