"""
Expansion of commands that touch two organizations into ordered steps.

Each step changes exactly one organization and shares the ``command_id``,
``issued_at`` and ``issued_by`` of the command it came from. Every step
decides to zero events when its effect is already present, so re-submitting
a command whose earlier attempt stopped halfway completes the remaining steps.

Commands that link a child under a parent register the child on the parent
first. The parent's version guards the ancestry check made for the link, and
the child's own attach step checks the parent's chain again.
"""
from typing import List, Optional, Tuple

from orgsource.commands import (
    AbsorbOrganization,
    AcceptAcquisition,
    AcquireOrganization,
    AddChildOrganization,
    AttachToParent,
    Command,
    CreateOrganization,
    DetachFromParent,
    MergeInto,
    MergeOrganizations,
    RegisterChild,
    RemoveChildOrganization,
    UnregisterChild,
)

Step = Tuple[str, Command]


def _step(command: Command, step_class, **fields) -> Command:
    return step_class(
        command_id=command.command_id,
        issued_at=command.issued_at,
        issued_by=command.issued_by,
        **fields,
    )


def plan(entity_id: str, command: Command) -> List[Step]:
    """
    Return the ``(entity_id, command)`` steps that carry out ``command``.

    Single-organization commands plan to themselves.
    """
    if isinstance(command, CreateOrganization) and command.parent_id is not None:
        return [
            (entity_id, command),
            (command.parent_id, _step(
                command, RegisterChild,
                child_id=entity_id, child_name=command.name, child_type=command.org_type)),
        ]

    if isinstance(command, AddChildOrganization):
        return [
            (entity_id, _step(
                command, RegisterChild,
                child_id=command.child_id, child_name=command.child_name, child_type=command.child_type)),
            (command.child_id, _step(command, AttachToParent, parent_id=entity_id)),
        ]

    if isinstance(command, RemoveChildOrganization):
        return [
            (entity_id, _step(command, UnregisterChild, child_id=command.child_id)),
            (command.child_id, _step(command, DetachFromParent, parent_id=entity_id)),
        ]

    if isinstance(command, MergeOrganizations):
        return [
            (command.source_id, _step(
                command, MergeInto, target_id=entity_id, member_disposition=command.member_disposition)),
            (entity_id, _step(
                command, AbsorbOrganization,
                source_id=command.source_id, member_disposition=command.member_disposition)),
        ]

    if isinstance(command, AcquireOrganization):
        return [
            (entity_id, _step(command, RegisterChild, child_id=command.acquired_id, acquisition=True)),
            (command.acquired_id, _step(
                command, AcceptAcquisition,
                acquirer_id=entity_id, maintains_independence=command.maintains_independence)),
        ]

    return [(entity_id, command)]


def link_of(entity_id: str, command: Command) -> Optional[Tuple[str, str]]:
    """Return ``(parent_id, child_id)`` for commands that put an existing organization under another."""
    if isinstance(command, AddChildOrganization):
        return entity_id, command.child_id
    if isinstance(command, AcquireOrganization):
        return entity_id, command.acquired_id
    return None


def unlink(parent_id: str, child_id: str, command: Command) -> List[Step]:
    """Steps that remove whatever part of the link from ``parent_id`` to ``child_id`` is present."""
    return [
        (parent_id, _step(command, UnregisterChild, child_id=child_id, rollback=True)),
        (child_id, _step(command, DetachFromParent, parent_id=parent_id)),
    ]
