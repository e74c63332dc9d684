"""
Command decisions for the organization aggregate.

``decide`` is pure: it reads the current state, the command and a
``DecisionContext`` with the facts about other organizations the repository
gathered beforehand, and returns the events the command produces. Rejections
are raised as ``BusinessRuleViolation`` subclasses.

Event ids are derived from ``(command_id, entity_id, version)`` and event
timestamps come from ``command.issued_at``, so deciding the same command
against the same state always yields identical events.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Type
from uuid import UUID, uuid5

from orgsource.commands import (
    AbsorbOrganization,
    AcceptAcquisition,
    AddLocation,
    AddMember,
    AttachToParent,
    ChangeOrganizationStatus,
    ChangePrimaryLocation,
    ChangeReportingRelationship,
    Command,
    CreateOrganization,
    DetachFromParent,
    DissolveOrganization,
    MergeInto,
    RegisterChild,
    RemoveLocation,
    RemoveMember,
    UnregisterChild,
    UpdateMemberRole,
    UpdateOrganization,
)
from orgsource.errors import (
    CircularHierarchy,
    CircularReporting,
    CommandValidationError,
    DissolutionBlockedByActiveChildren,
    DuplicateLocation,
    DuplicateMember,
    EntityAlreadyExists,
    EntityNotFound,
    InvalidAcquisition,
    InvalidHierarchy,
    InvalidMerge,
    InvalidStatusTransition,
    LocationNotFound,
    MemberNotFound,
    MemberRemovalBlockedByDependents,
    OperationNotPermitted,
)
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
from orgsource.models.organization import OrganizationState

from .transitions import check_transition

EVENT_NAMESPACE = UUID('6f1c2b1e-4a8d-5c3e-9b7a-0d2e4f6a8c10')

ACQUIRABLE_STATUSES = frozenset({
    OrganizationStatus.ACTIVE,
    OrganizationStatus.INACTIVE,
    OrganizationStatus.SUSPENDED,
})


@dataclass(frozen=True)
class DecisionContext:
    """
    Facts about other organizations needed by some commands.

    ``ancestor_ids`` is the parent chain of the organization being decided,
    nearest first. ``parent_chain`` is the organization a step attaches to
    followed by its own ancestors. ``child_statuses`` maps each child id to its
    status, with ``None`` for a child whose stream no longer exists.
    """

    ancestor_ids: Tuple[str, ...] = ()
    parent_chain: Tuple[str, ...] = ()
    child_statuses: Mapping[str, Optional[OrganizationStatus]] = field(default_factory=dict)


def event_id_for(command_id: str, entity_id: str, version: int) -> str:
    return uuid5(EVENT_NAMESPACE, f"{command_id}:{entity_id}:{version}").hex


class _EventBuffer:
    """Collects the events of one decision and assigns their versions and ids."""

    def __init__(self, state: OrganizationState, command: Command):
        self.state = state
        self.command = command
        self.events: List[DomainEvent] = []

    def emit(self, event_class: Type[DomainEvent], **payload):
        version = self.state.version + len(self.events) + 1
        self.events.append(event_class(
            event_id=event_id_for(self.command.command_id, self.state.entity_id, version),
            entity_id=self.state.entity_id,
            version=version,
            occurred_at=self.command.issued_at,
            causation_id=self.command.command_id,
            **payload,
        ))


def creates_reporting_cycle(reports_to: Mapping[str, Optional[str]], subject: str,
                            proposed_manager: Optional[str]) -> bool:
    """
    Walk upward from ``proposed_manager`` through ``reports_to``.

    ``reports_to`` must already describe the proposed graph. Returns True if
    the walk reaches ``subject``.
    """
    visited = set()
    current = proposed_manager
    while current is not None and current not in visited:
        if current == subject:
            return True
        visited.add(current)
        current = reports_to.get(current)
    return False


def _reporting_graph(state: OrganizationState) -> Dict[str, Optional[str]]:
    return {pid: member.reports_to for pid, member in state.members.items()}


def _require_exists(state: OrganizationState):
    if not state.exists:
        raise EntityNotFound(state.entity_id)


def _require_not_terminal(state: OrganizationState, operation: str):
    if state.is_terminal:
        raise OperationNotPermitted(f"Cannot {operation}: organization {state.entity_id} is {state.status}")


def _require_members_allowed(state: OrganizationState):
    if not state.status.can_have_members:
        raise OperationNotPermitted(
            f"Members of organization {state.entity_id} cannot change while it is {state.status}")


def _require_restructurable(state: OrganizationState, operation: str):
    if not state.status.can_be_restructured:
        raise OperationNotPermitted(f"Cannot {operation}: organization {state.entity_id} is {state.status}")


def _require_member(state: OrganizationState, person_id: str, label: str = 'Person'):
    if person_id not in state.members:
        raise MemberNotFound(f"{label} {person_id} is not a member of {state.entity_id}")


def _require_no_active_children(state: OrganizationState, context: DecisionContext):
    active = []
    for child_id in state.child_ids:
        status = context.child_statuses.get(child_id)
        if status is not None and not status.is_terminal:
            active.append(child_id)
    if active:
        raise DissolutionBlockedByActiveChildren(state.entity_id, active)


def _require_not_in_hierarchy(state: OrganizationState, context: DecisionContext, other_id: str):
    if other_id == state.entity_id or other_id in context.ancestor_ids:
        raise CircularHierarchy(
            f"{other_id} is {state.entity_id} or one of its ancestors")


def _require_acyclic_attachment(state: OrganizationState, context: DecisionContext, parent_id: str):
    if state.entity_id in context.parent_chain or parent_id in state.child_ids:
        raise CircularHierarchy(
            f"Attaching {state.entity_id} to {parent_id} would make it its own ancestor")


# Lifecycle


def _decide_create(state, command: CreateOrganization, context, events: _EventBuffer):
    if state.exists:
        if state.creation_command_id == command.command_id:
            return
        raise EntityAlreadyExists(f"Organization {state.entity_id} already exists")
    if command.parent_id == state.entity_id:
        raise CircularHierarchy(f"Organization {state.entity_id} cannot be its own parent")
    events.emit(
        OrganizationCreated,
        name=command.name.strip(),
        org_type=command.org_type,
        parent_id=command.parent_id,
        primary_location_id=command.primary_location_id,
    )


def _decide_update(state, command: UpdateOrganization, context, events):
    _require_not_terminal(state, 'update organization')
    name = command.name.strip()
    if name != state.name:
        events.emit(OrganizationUpdated, name=name)


def _decide_change_status(state, command: ChangeOrganizationStatus, context, events):
    if command.new_status == OrganizationStatus.MERGED:
        raise InvalidStatusTransition(state.status, command.new_status, "use MergeOrganizations")
    check_transition(state.status, command.new_status)
    if command.new_status == OrganizationStatus.DISSOLVED:
        _require_no_active_children(state, context)
    events.emit(
        OrganizationStatusChanged,
        old_status=state.status,
        new_status=command.new_status,
        reason=command.reason,
    )


def _decide_dissolve(state, command: DissolveOrganization, context, events):
    check_transition(state.status, OrganizationStatus.DISSOLVED)
    _require_no_active_children(state, context)
    events.emit(
        OrganizationDissolved,
        old_status=state.status,
        reason=command.reason,
        member_disposition=command.member_disposition,
    )


# Members


def _decide_add_member(state, command: AddMember, context, events):
    _require_members_allowed(state)
    if command.person_id in state.members:
        raise DuplicateMember(f"Person {command.person_id} is already a member of {state.entity_id}")
    if command.reports_to is not None:
        if command.reports_to == command.person_id:
            raise CircularReporting(f"Person {command.person_id} cannot report to themselves")
        _require_member(state, command.reports_to, 'Manager')
    graph = _reporting_graph(state)
    graph[command.person_id] = command.reports_to
    if creates_reporting_cycle(graph, command.person_id, command.reports_to):
        raise CircularReporting(f"Adding {command.person_id} would create a reporting cycle")
    events.emit(MemberAdded, person_id=command.person_id, role=command.role, reports_to=command.reports_to)


def _decide_remove_member(state, command: RemoveMember, context, events):
    _require_members_allowed(state)
    _require_member(state, command.person_id)
    dependents = state.direct_reports(command.person_id)
    if dependents and not command.reassign_reports:
        raise MemberRemovalBlockedByDependents(command.person_id, dependents)

    new_manager_id = command.new_manager_id
    if dependents:
        if new_manager_id == command.person_id:
            raise CircularReporting(f"Reports of {command.person_id} cannot be reassigned to them")
        if new_manager_id is not None:
            _require_member(state, new_manager_id, 'Manager')
        graph = _reporting_graph(state)
        del graph[command.person_id]
        for dependent_id in dependents:
            graph[dependent_id] = new_manager_id
        for dependent_id in dependents:
            if creates_reporting_cycle(graph, dependent_id, new_manager_id):
                raise CircularReporting(
                    f"Reassigning {dependent_id} to {new_manager_id} would create a reporting cycle")
        for dependent_id in dependents:
            events.emit(
                ReportingRelationshipChanged,
                person_id=dependent_id,
                old_manager_id=command.person_id,
                new_manager_id=new_manager_id,
            )
    events.emit(MemberRemoved, person_id=command.person_id, reason=command.reason)


def _decide_update_member_role(state, command: UpdateMemberRole, context, events):
    _require_members_allowed(state)
    _require_member(state, command.person_id)
    old_role = state.members[command.person_id].role
    if old_role != command.new_role:
        events.emit(MemberRoleUpdated, person_id=command.person_id, old_role=old_role, new_role=command.new_role)


def _decide_change_reporting(state, command: ChangeReportingRelationship, context, events):
    _require_members_allowed(state)
    _require_member(state, command.person_id)
    new_manager_id = command.new_manager_id
    old_manager_id = state.members[command.person_id].reports_to
    if new_manager_id is not None:
        if new_manager_id == command.person_id:
            raise CircularReporting(f"Person {command.person_id} cannot report to themselves")
        _require_member(state, new_manager_id, 'Manager')
    if new_manager_id == old_manager_id:
        return
    graph = _reporting_graph(state)
    graph[command.person_id] = new_manager_id
    if creates_reporting_cycle(graph, command.person_id, new_manager_id):
        raise CircularReporting(
            f"{command.person_id} reporting to {new_manager_id} would create a reporting cycle")
    events.emit(
        ReportingRelationshipChanged,
        person_id=command.person_id,
        old_manager_id=old_manager_id,
        new_manager_id=new_manager_id,
    )


# Locations


def _decide_add_location(state, command: AddLocation, context, events):
    _require_restructurable(state, 'add location')
    if command.location_id in state.location_ids:
        raise DuplicateLocation(f"Location {command.location_id} is already associated with {state.entity_id}")
    events.emit(LocationAdded, location_id=command.location_id)
    if state.primary_location_id is None or command.make_primary:
        events.emit(
            PrimaryLocationChanged,
            old_location_id=state.primary_location_id,
            new_location_id=command.location_id,
        )


def _decide_remove_location(state, command: RemoveLocation, context, events):
    _require_restructurable(state, 'remove location')
    if command.location_id not in state.location_ids:
        raise LocationNotFound(f"Location {command.location_id} is not associated with {state.entity_id}")
    events.emit(LocationRemoved, location_id=command.location_id)
    if state.primary_location_id == command.location_id:
        remaining = sorted(state.location_ids - {command.location_id})
        events.emit(
            PrimaryLocationChanged,
            old_location_id=command.location_id,
            new_location_id=remaining[0] if remaining else None,
        )


def _decide_change_primary_location(state, command: ChangePrimaryLocation, context, events):
    _require_restructurable(state, 'change primary location')
    if command.location_id not in state.location_ids:
        raise LocationNotFound(f"Location {command.location_id} is not associated with {state.entity_id}")
    if command.location_id != state.primary_location_id:
        events.emit(
            PrimaryLocationChanged,
            old_location_id=state.primary_location_id,
            new_location_id=command.location_id,
        )


# Hierarchy steps


def _decide_register_child(state, command: RegisterChild, context, events):
    if command.child_id in state.child_ids:
        return
    if command.acquisition:
        if state.status != OrganizationStatus.ACTIVE:
            raise InvalidAcquisition(f"Acquirer {state.entity_id} must be Active, is {state.status}")
    else:
        _require_restructurable(state, 'add child organization')
    _require_not_in_hierarchy(state, context, command.child_id)
    events.emit(
        ChildOrganizationAdded,
        child_id=command.child_id,
        child_name=command.child_name,
        child_type=command.child_type,
    )


def _decide_unregister_child(state, command: UnregisterChild, context, events):
    if command.child_id not in state.child_ids:
        return
    if command.rollback:
        if state.is_terminal:
            return
    else:
        _require_restructurable(state, 'remove child organization')
    events.emit(ChildOrganizationRemoved, child_id=command.child_id)


def _decide_attach_to_parent(state, command: AttachToParent, context, events):
    if state.parent_id == command.parent_id:
        return
    _require_not_terminal(state, 'attach to parent')
    if command.parent_id == state.entity_id:
        raise CircularHierarchy(f"Organization {state.entity_id} cannot be its own parent")
    if state.parent_id is not None:
        raise InvalidHierarchy(
            f"Organization {state.entity_id} already belongs to {state.parent_id}")
    _require_acyclic_attachment(state, context, command.parent_id)
    events.emit(ParentOrganizationChanged, old_parent_id=None, new_parent_id=command.parent_id)


def _decide_detach_from_parent(state, command: DetachFromParent, context, events):
    if not state.exists or state.parent_id != command.parent_id or state.is_terminal:
        return
    events.emit(ParentOrganizationChanged, old_parent_id=command.parent_id, new_parent_id=None)


# Merge and acquisition steps


def _decide_merge_into(state, command: MergeInto, context, events):
    if state.status == OrganizationStatus.MERGED and state.merged_into == command.target_id:
        return
    if command.target_id == state.entity_id:
        raise InvalidMerge(f"Organization {state.entity_id} cannot be merged into itself")
    check_transition(state.status, OrganizationStatus.MERGED)
    events.emit(
        OrganizationMerged,
        old_status=state.status,
        target_id=command.target_id,
        member_disposition=command.member_disposition,
    )


def _decide_absorb(state, command: AbsorbOrganization, context, events):
    if command.source_id in state.absorbed_ids:
        return
    if command.source_id == state.entity_id:
        raise InvalidMerge(f"Organization {state.entity_id} cannot absorb itself")
    if state.status != OrganizationStatus.ACTIVE:
        raise InvalidMerge(f"Merge target {state.entity_id} must be Active, is {state.status}")
    _require_not_in_hierarchy(state, context, command.source_id)
    events.emit(OrganizationAbsorbed, source_id=command.source_id, member_disposition=command.member_disposition)


def _decide_accept_acquisition(state, command: AcceptAcquisition, context, events):
    if state.acquired_by == command.acquirer_id and state.parent_id == command.acquirer_id:
        return
    if command.acquirer_id == state.entity_id:
        raise InvalidAcquisition(f"Organization {state.entity_id} cannot acquire itself")
    if state.status not in ACQUIRABLE_STATUSES:
        raise InvalidAcquisition(f"Organization {state.entity_id} cannot be acquired while {state.status}")
    if state.parent_id is not None and state.parent_id != command.acquirer_id:
        raise InvalidAcquisition(
            f"Organization {state.entity_id} already belongs to {state.parent_id}")
    _require_acyclic_attachment(state, context, command.acquirer_id)
    events.emit(
        OrganizationAcquired,
        acquirer_id=command.acquirer_id,
        maintains_independence=command.maintains_independence,
        old_parent_id=state.parent_id,
    )


_DECIDERS: Dict[Type[Command], Callable] = {
    CreateOrganization: _decide_create,
    UpdateOrganization: _decide_update,
    ChangeOrganizationStatus: _decide_change_status,
    DissolveOrganization: _decide_dissolve,
    AddMember: _decide_add_member,
    RemoveMember: _decide_remove_member,
    UpdateMemberRole: _decide_update_member_role,
    ChangeReportingRelationship: _decide_change_reporting,
    AddLocation: _decide_add_location,
    RemoveLocation: _decide_remove_location,
    ChangePrimaryLocation: _decide_change_primary_location,
    RegisterChild: _decide_register_child,
    UnregisterChild: _decide_unregister_child,
    AttachToParent: _decide_attach_to_parent,
    DetachFromParent: _decide_detach_from_parent,
    MergeInto: _decide_merge_into,
    AbsorbOrganization: _decide_absorb,
    AcceptAcquisition: _decide_accept_acquisition,
}


def is_single_aggregate(command: Command) -> bool:
    return type(command) in _DECIDERS


def decide(state: OrganizationState, command: Command,
           context: Optional[DecisionContext] = None) -> List[DomainEvent]:
    """
    Decide which events ``command`` produces against ``state``.

    An empty list means the command's effect is already present.

    Raises:
        CommandValidationError: If the command is not a single-organization command.
        EntityNotFound: If ``state`` does not exist and the command is not a create or a detach.
        BusinessRuleViolation: If a business rule rejects the command.
    """
    decider = _DECIDERS.get(type(command))
    if decider is None:
        raise CommandValidationError(f"{command.command_type} must be planned before it is decided")
    if not isinstance(command, (CreateOrganization, DetachFromParent)):
        _require_exists(state)
    events = _EventBuffer(state, command)
    decider(state, command, context or DecisionContext(), events)
    return events.events
