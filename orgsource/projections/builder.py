"""
Projection builder: folds events into read views
"""
import logging
import threading
from collections import Counter
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from orgsource.data.base import EventLog
from orgsource.events import (
    ChildOrganizationAdded,
    ChildOrganizationRemoved,
    DomainEvent,
    LocationAdded,
    LocationRemoved,
    MemberAdded,
    MemberRemoved,
    MemberRoleUpdated,
    OrganizationAbsorbed,
    OrganizationAcquired,
    OrganizationCreated,
    OrganizationDissolved,
    OrganizationMerged,
    OrganizationStatusChanged,
    OrganizationUpdated,
    ParentOrganizationChanged,
    PrimaryLocationChanged,
    ReportingRelationshipChanged,
    event_from_dict,
)
from orgsource.models.enums import OrganizationStatus, SizeCategory
from orgsource.models.member import Member

from .views import OrganizationStatistics, OrganizationView

logger = logging.getLogger(__name__)


class ProjectionBuilder:
    """
    Maintains ``OrganizationView`` objects from a stream of events.

    Each organization's events are applied strictly in version order. An
    event that arrives ahead of its predecessors is held back until the gap
    is filled, and an event at or below the view's version is a redelivery
    and is ignored. All state can be discarded and rebuilt from the event
    log with ``rebuild``.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.views: Dict[str, OrganizationView] = {}
        self._pending: Dict[str, Dict[int, DomainEvent]] = {}

    def reset(self):
        with self._lock:
            self.views = {}
            self._pending = {}

    def _view(self, entity_id: str) -> OrganizationView:
        view = self.views.get(entity_id)
        if view is None:
            view = OrganizationView(entity_id=entity_id)
            self.views[entity_id] = view
        return view

    def apply(self, event: DomainEvent) -> bool:
        """
        Accept ``event`` and apply every event of its organization that is now in order.

        Returns False if the event was already applied or is already held back.
        """
        with self._lock:
            view = self._view(event.entity_id)
            if event.version <= view.version:
                return False
            pending = self._pending.setdefault(event.entity_id, {})
            if event.version in pending:
                return False
            pending[event.version] = event
            while view.version + 1 in pending:
                self._apply_next(view, pending.pop(view.version + 1))
            if pending:
                logger.debug("Holding %s v%d until v%d arrives", event.entity_id, event.version, view.version + 1)
            else:
                del self._pending[event.entity_id]
            return True

    def _apply_next(self, view: OrganizationView, event: DomainEvent):
        handler = getattr(self, f"_on_{type(event).__name__}", None)
        if handler is None:
            logger.warning("No projection handler for %s", event.event_type)
        else:
            handler(view, event)
        view.version = event.version
        view.updated_at = event.occurred_at

    def pending_versions(self, entity_id: str) -> List[int]:
        """Versions of ``entity_id`` received but not yet applied."""
        with self._lock:
            return sorted(self._pending.get(entity_id, {}))

    def apply_all(self, events: Iterable[DomainEvent]) -> int:
        return sum(1 for event in events if self.apply(event))

    def handle_message(self, message: Dict[str, Any]) -> bool:
        """Apply one event message as published by ``EventPublisher``."""
        return self.apply(event_from_dict(message))

    def rebuild(self, event_log: EventLog) -> int:
        """Discard every view and replay the whole log."""
        with self._lock:
            self.reset()
            with event_log:
                events = event_log.read_all()
            count = self.apply_all(events)
        logger.info("Rebuilt projections for %d organizations from %d events", len(self.views), count)
        return count

    # Event handlers

    def _on_OrganizationCreated(self, view: OrganizationView, event: OrganizationCreated):
        view.name = event.name
        view.org_type = event.org_type
        view.status = OrganizationStatus.CREATING
        view.parent_id = event.parent_id
        view.created_at = event.occurred_at
        if event.primary_location_id:
            view.location_ids.add(event.primary_location_id)
            view.primary_location_id = event.primary_location_id

    def _on_OrganizationUpdated(self, view, event: OrganizationUpdated):
        view.name = event.name

    def _on_OrganizationStatusChanged(self, view, event: OrganizationStatusChanged):
        view.status = event.new_status

    def _on_MemberAdded(self, view, event: MemberAdded):
        view.members[event.person_id] = Member(
            person_id=event.person_id, role=event.role, reports_to=event.reports_to, joined_at=event.occurred_at)

    def _on_MemberRemoved(self, view, event: MemberRemoved):
        view.members.pop(event.person_id, None)

    def _on_MemberRoleUpdated(self, view, event: MemberRoleUpdated):
        member = view.members.get(event.person_id)
        if member is not None:
            view.members[event.person_id] = replace(member, role=event.new_role)

    def _on_ReportingRelationshipChanged(self, view, event: ReportingRelationshipChanged):
        member = view.members.get(event.person_id)
        if member is not None:
            view.members[event.person_id] = replace(member, reports_to=event.new_manager_id)

    def _on_ChildOrganizationAdded(self, view, event: ChildOrganizationAdded):
        view.child_ids.add(event.child_id)

    def _on_ChildOrganizationRemoved(self, view, event: ChildOrganizationRemoved):
        view.child_ids.discard(event.child_id)

    def _on_ParentOrganizationChanged(self, view, event: ParentOrganizationChanged):
        view.parent_id = event.new_parent_id

    def _on_LocationAdded(self, view, event: LocationAdded):
        view.location_ids.add(event.location_id)

    def _on_LocationRemoved(self, view, event: LocationRemoved):
        view.location_ids.discard(event.location_id)
        if view.primary_location_id == event.location_id:
            view.primary_location_id = None

    def _on_PrimaryLocationChanged(self, view, event: PrimaryLocationChanged):
        view.primary_location_id = event.new_location_id

    def _on_OrganizationDissolved(self, view, event: OrganizationDissolved):
        view.status = OrganizationStatus.DISSOLVED

    def _on_OrganizationMerged(self, view, event: OrganizationMerged):
        view.status = OrganizationStatus.MERGED
        view.merged_into = event.target_id

    def _on_OrganizationAbsorbed(self, view, event: OrganizationAbsorbed):
        view.absorbed_ids.add(event.source_id)

    def _on_OrganizationAcquired(self, view, event: OrganizationAcquired):
        view.acquired_by = event.acquirer_id
        view.parent_id = event.acquirer_id

    # Queries

    def view(self, entity_id: str) -> Optional[OrganizationView]:
        view = self.views.get(entity_id)
        if view is None or view.status is None:
            return None
        return view

    def roots(self) -> List[str]:
        """Ids of known organizations without a parent."""
        return sorted(
            entity_id for entity_id, view in self.views.items()
            if view.status is not None and view.parent_id is None
        )

    def hierarchy_tree(self, root_id: str) -> Optional[Dict[str, Any]]:
        """Nested dict of ``root_id`` and its descendants, children sorted by id."""
        def _node(entity_id, seen):
            view = self.views.get(entity_id)
            node = {
                'entity_id': entity_id,
                'name': view.name if view else None,
                'org_type': str(view.org_type) if view and view.org_type else None,
                'status': str(view.status) if view and view.status else None,
                'children': [],
            }
            if view is None:
                return node
            for child_id in sorted(view.child_ids):
                if child_id not in seen:
                    node['children'].append(_node(child_id, seen | {child_id}))
            return node

        with self._lock:
            if self.view(root_id) is None:
                return None
            return _node(root_id, {root_id})

    def reporting_chain(self, entity_id: str, person_id: str) -> List[str]:
        """Managers of ``person_id`` in ``entity_id``, nearest first."""
        view = self.view(entity_id)
        if view is None or person_id not in view.members:
            return []
        chain = []
        seen = {person_id}
        manager_id = view.members[person_id].reports_to
        while manager_id is not None and manager_id not in seen and manager_id in view.members:
            chain.append(manager_id)
            seen.add(manager_id)
            manager_id = view.members[manager_id].reports_to
        return chain

    def reporting_structure(self, entity_id: str) -> List[Dict[str, Any]]:
        """Members of ``entity_id`` as a forest of reporting trees, top-level members first."""
        view = self.view(entity_id)
        if view is None:
            return []
        reports: Dict[Optional[str], List[str]] = {}
        for person_id, member in view.members.items():
            manager_id = member.reports_to if member.reports_to in view.members else None
            reports.setdefault(manager_id, []).append(person_id)

        def _node(person_id, seen):
            member = view.members[person_id]
            return {
                'person_id': person_id,
                'title': member.role.title,
                'level': str(member.role.level),
                'reports': [
                    _node(pid, seen | {pid})
                    for pid in sorted(reports.get(person_id, []))
                    if pid not in seen
                ],
            }

        return [_node(pid, {pid}) for pid in sorted(reports.get(None, []))]

    def _reporting_depth(self, view: OrganizationView) -> int:
        return max(
            (len(self.reporting_chain(view.entity_id, person_id)) + 1 for person_id in view.members),
            default=0,
        )

    def statistics(self, entity_id: str) -> Optional[OrganizationStatistics]:
        view = self.view(entity_id)
        if view is None:
            return None
        members = list(view.members.values())
        return OrganizationStatistics(
            entity_id=entity_id,
            member_count=len(members),
            size_category=view.size_category,
            members_by_role=dict(Counter(m.role.title for m in members)),
            members_by_level=dict(Counter(str(m.role.level) for m in members)),
            management_count=sum(1 for m in members if m.role.level.is_management),
            reporting_depth=self._reporting_depth(view),
            location_count=len(view.location_ids),
            primary_location_id=view.primary_location_id,
            child_count=len(view.child_ids),
        )

    def size_distribution(self) -> Dict[str, int]:
        """Number of organizations per size category, terminal organizations excluded."""
        counts = {str(category): 0 for category in SizeCategory}
        for view in self.views.values():
            if view.status is not None and not view.status.is_terminal:
                counts[str(view.size_category)] += 1
        return counts

    def location_distribution(self) -> Dict[str, int]:
        """Number of non-terminal organizations associated with each location."""
        counts = Counter()
        for view in self.views.values():
            if view.status is not None and not view.status.is_terminal:
                counts.update(view.location_ids)
        return dict(sorted(counts.items()))
