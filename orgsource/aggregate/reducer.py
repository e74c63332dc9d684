"""
Event fold for the organization aggregate.

``apply`` never rejects an event on business grounds: anything that reached
the log is applied unconditionally. The only failures are an event that
cannot belong to this stream (wrong entity, version gap, unknown type), which
means the log is corrupt.
"""
from dataclasses import replace
from typing import Iterable, Optional

from orgsource.errors import EventLogCorruptionError
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
)
from orgsource.models.enums import OrganizationStatus
from orgsource.models.member import Member
from orgsource.models.organization import OrganizationState

from .transitions import INITIAL_STATUS


def _apply_organization_created(state: OrganizationState, event: OrganizationCreated) -> OrganizationState:
    location_ids = frozenset({event.primary_location_id}) if event.primary_location_id else frozenset()
    return replace(
        state,
        name=event.name,
        org_type=event.org_type,
        status=INITIAL_STATUS,
        parent_id=event.parent_id,
        location_ids=location_ids,
        primary_location_id=event.primary_location_id,
        creation_command_id=event.causation_id,
        created_at=event.occurred_at,
    )


def _apply_organization_updated(state, event: OrganizationUpdated):
    return replace(state, name=event.name)


def _apply_organization_status_changed(state, event: OrganizationStatusChanged):
    return replace(state, status=event.new_status)


def _apply_member_added(state, event: MemberAdded):
    members = dict(state.members)
    members[event.person_id] = Member(
        person_id=event.person_id,
        role=event.role,
        reports_to=event.reports_to,
        joined_at=event.occurred_at,
    )
    return replace(state, members=members)


def _apply_member_removed(state, event: MemberRemoved):
    members = {pid: m for pid, m in state.members.items() if pid != event.person_id}
    return replace(state, members=members)


def _replace_member(state, person_id, **changes):
    members = dict(state.members)
    member = members.get(person_id)
    if member is None:
        raise EventLogCorruptionError(f"Event for {state.entity_id} references unknown member {person_id}")
    members[person_id] = replace(member, **changes)
    return replace(state, members=members)


def _apply_member_role_updated(state, event: MemberRoleUpdated):
    return _replace_member(state, event.person_id, role=event.new_role)


def _apply_reporting_relationship_changed(state, event: ReportingRelationshipChanged):
    return _replace_member(state, event.person_id, reports_to=event.new_manager_id)


def _apply_child_organization_added(state, event: ChildOrganizationAdded):
    return replace(state, child_ids=state.child_ids | {event.child_id})


def _apply_child_organization_removed(state, event: ChildOrganizationRemoved):
    return replace(state, child_ids=state.child_ids - {event.child_id})


def _apply_parent_organization_changed(state, event: ParentOrganizationChanged):
    return replace(state, parent_id=event.new_parent_id)


def _apply_location_added(state, event: LocationAdded):
    return replace(state, location_ids=state.location_ids | {event.location_id})


def _apply_location_removed(state, event: LocationRemoved):
    primary = state.primary_location_id
    if primary == event.location_id:
        primary = None
    return replace(state, location_ids=state.location_ids - {event.location_id}, primary_location_id=primary)


def _apply_primary_location_changed(state, event: PrimaryLocationChanged):
    return replace(state, primary_location_id=event.new_location_id)


def _apply_organization_dissolved(state, event: OrganizationDissolved):
    return replace(state, status=OrganizationStatus.DISSOLVED)


def _apply_organization_merged(state, event: OrganizationMerged):
    return replace(state, status=OrganizationStatus.MERGED, merged_into=event.target_id)


def _apply_organization_absorbed(state, event: OrganizationAbsorbed):
    return replace(state, absorbed_ids=state.absorbed_ids | {event.source_id})


def _apply_organization_acquired(state, event: OrganizationAcquired):
    return replace(state, acquired_by=event.acquirer_id, parent_id=event.acquirer_id)


_HANDLERS = {
    OrganizationCreated: _apply_organization_created,
    OrganizationUpdated: _apply_organization_updated,
    OrganizationStatusChanged: _apply_organization_status_changed,
    MemberAdded: _apply_member_added,
    MemberRemoved: _apply_member_removed,
    MemberRoleUpdated: _apply_member_role_updated,
    ReportingRelationshipChanged: _apply_reporting_relationship_changed,
    ChildOrganizationAdded: _apply_child_organization_added,
    ChildOrganizationRemoved: _apply_child_organization_removed,
    ParentOrganizationChanged: _apply_parent_organization_changed,
    LocationAdded: _apply_location_added,
    LocationRemoved: _apply_location_removed,
    PrimaryLocationChanged: _apply_primary_location_changed,
    OrganizationDissolved: _apply_organization_dissolved,
    OrganizationMerged: _apply_organization_merged,
    OrganizationAbsorbed: _apply_organization_absorbed,
    OrganizationAcquired: _apply_organization_acquired,
}


def apply(state: OrganizationState, event: DomainEvent) -> OrganizationState:
    """
    Return the state after ``event``.

    Raises:
        EventLogCorruptionError: If the event is for another entity, does not
            follow ``state.version`` directly, or has no handler.
    """
    if event.entity_id != state.entity_id:
        raise EventLogCorruptionError(
            f"Event {event.event_id} belongs to {event.entity_id}, not {state.entity_id}")
    if event.version != state.version + 1:
        raise EventLogCorruptionError(
            f"Event {event.event_id} has version {event.version}, expected {state.version + 1} "
            f"for {state.entity_id}")
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise EventLogCorruptionError(f"No handler for event type {event.event_type}")
    new_state = handler(state, event)
    return replace(new_state, version=event.version, updated_at=event.occurred_at)


def fold(events: Iterable[DomainEvent], state: Optional[OrganizationState] = None,
         entity_id: Optional[str] = None) -> OrganizationState:
    """
    Fold ``events`` onto ``state``, or onto an empty state for ``entity_id``.

    ``fold(events) == fold(events[k:], fold(events[:k]))`` for every split point k.
    """
    events = list(events)
    if state is None:
        if entity_id is None:
            if not events:
                raise ValueError("entity_id is required to fold an empty event list")
            entity_id = events[0].entity_id
        state = OrganizationState.empty(entity_id)
    for event in events:
        state = apply(state, event)
    return state
