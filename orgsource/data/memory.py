"""
In-process event log and snapshot store
"""
import logging
import threading
from typing import Dict, List, Optional, Sequence

from orgsource.errors import ConcurrencyConflict
from orgsource.events import DomainEvent
from orgsource.models.organization import OrganizationState

from .base import EventLog, SnapshotStore

logger = logging.getLogger(__name__)


class InMemoryEventLog(EventLog):
    """
    EventLog kept in process memory.

    A single lock makes the version check and the append atomic, so
    concurrent writers to one organization see ``ConcurrencyConflict``
    instead of interleaving.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._streams: Dict[str, List[DomainEvent]] = {}
        self._all: List[DomainEvent] = []
        self._event_ids = set()

    def append(self, entity_id: str, expected_version: int, events: Sequence[DomainEvent]) -> int:
        self.check_batch(entity_id, expected_version, events)
        with self._lock:
            stream = self._streams.setdefault(entity_id, [])
            if len(stream) != expected_version:
                raise ConcurrencyConflict(entity_id, expected_version, len(stream))
            duplicate = next((e.event_id for e in events if e.event_id in self._event_ids), None)
            if duplicate is not None:
                raise ValueError(f"Event {duplicate} is already stored")
            stream.extend(events)
            self._all.extend(events)
            self._event_ids.update(e.event_id for e in events)
            new_version = len(stream)
        logger.debug("Appended %d events to %s, now at version %d", len(events), entity_id, new_version)
        return new_version

    def read(self, entity_id: str, from_version: int = 0) -> List[DomainEvent]:
        with self._lock:
            return list(self._streams.get(entity_id, [])[from_version:])

    def read_all(self) -> List[DomainEvent]:
        with self._lock:
            return list(self._all)

    def current_version(self, entity_id: str) -> int:
        with self._lock:
            return len(self._streams.get(entity_id, []))


class InMemorySnapshotStore(SnapshotStore):
    """Snapshots kept as serialized dicts, the form a persistent store would hold."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshots: Dict[str, dict] = {}

    def get(self, entity_id: str) -> Optional[OrganizationState]:
        with self._lock:
            data = self._snapshots.get(entity_id)
        if data is None:
            return None
        return OrganizationState.from_dict(data)

    def save(self, state: OrganizationState):
        data = state.as_dict(convert_datetime_to_iso_string=True)
        with self._lock:
            current = self._snapshots.get(state.entity_id)
            if current is not None and current['version'] >= state.version:
                return
            self._snapshots[state.entity_id] = data
