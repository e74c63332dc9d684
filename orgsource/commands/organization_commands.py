"""
Commands accepted by the organization aggregate.

Public commands are what callers submit. Step commands are produced by
``orgsource.aggregate.coordination.plan`` when a public command touches two
organizations; each step changes exactly one of them.
"""
from dataclasses import dataclass
from typing import Optional

from orgsource.models.enums import MemberDisposition, OrganizationStatus, OrganizationType, RoleLevel
from orgsource.models.role import Role

from .base import Command, optional_text, register_command, require_text


def _require_enum(value, enum_class, name):
    if not isinstance(value, enum_class):
        return f"{name} must be one of: {', '.join(v.value for v in enum_class)}"


def _require_role(value, name):
    if not isinstance(value, Role):
        return f"{name} must be a Role"
    if not isinstance(value.level, RoleLevel):
        return _require_enum(value.level, RoleLevel, f"{name}.level")
    return require_text(value.title, f"{name}.title")


@register_command
@dataclass(kw_only=True)
class CreateOrganization(Command):
    name: str
    org_type: OrganizationType
    parent_id: Optional[str] = None
    primary_location_id: Optional[str] = None

    def validate_name(self):
        return require_text(self.name, 'name')

    def validate_org_type(self):
        return _require_enum(self.org_type, OrganizationType, 'org_type')

    def validate_parent_id(self):
        return optional_text(self.parent_id, 'parent_id')

    def validate_primary_location_id(self):
        return optional_text(self.primary_location_id, 'primary_location_id')


@register_command
@dataclass(kw_only=True)
class UpdateOrganization(Command):
    name: str

    def validate_name(self):
        return require_text(self.name, 'name')


@register_command
@dataclass(kw_only=True)
class ChangeOrganizationStatus(Command):
    requires_child_statuses = True

    new_status: OrganizationStatus
    reason: Optional[str] = None

    def validate_new_status(self):
        return _require_enum(self.new_status, OrganizationStatus, 'new_status')


@register_command
@dataclass(kw_only=True)
class AddMember(Command):
    person_id: str
    role: Role
    reports_to: Optional[str] = None

    def validate_person_id(self):
        return require_text(self.person_id, 'person_id')

    def validate_role(self):
        return _require_role(self.role, 'role')

    def validate_reports_to(self):
        return optional_text(self.reports_to, 'reports_to')


@register_command
@dataclass(kw_only=True)
class RemoveMember(Command):
    """
    Remove a member. Members reporting to the removed person block the
    removal unless ``reassign_reports`` is set, in which case they are moved
    to ``new_manager_id`` (``None`` leaves them without a manager).
    """
    person_id: str
    reason: Optional[str] = None
    reassign_reports: bool = False
    new_manager_id: Optional[str] = None

    def validate_person_id(self):
        return require_text(self.person_id, 'person_id')

    def validate_new_manager_id(self):
        if self.new_manager_id is not None and not self.reassign_reports:
            return "new_manager_id requires reassign_reports"
        return optional_text(self.new_manager_id, 'new_manager_id')


@register_command
@dataclass(kw_only=True)
class UpdateMemberRole(Command):
    person_id: str
    new_role: Role

    def validate_person_id(self):
        return require_text(self.person_id, 'person_id')

    def validate_new_role(self):
        return _require_role(self.new_role, 'new_role')


@register_command
@dataclass(kw_only=True)
class ChangeReportingRelationship(Command):
    person_id: str
    new_manager_id: Optional[str] = None

    def validate_person_id(self):
        return require_text(self.person_id, 'person_id')

    def validate_new_manager_id(self):
        return optional_text(self.new_manager_id, 'new_manager_id')


@register_command
@dataclass(kw_only=True)
class AddChildOrganization(Command):
    child_id: str
    child_name: Optional[str] = None
    child_type: Optional[OrganizationType] = None

    def validate_child_id(self):
        return require_text(self.child_id, 'child_id')

    def validate_child_type(self):
        if self.child_type is not None:
            return _require_enum(self.child_type, OrganizationType, 'child_type')


@register_command
@dataclass(kw_only=True)
class RemoveChildOrganization(Command):
    child_id: str

    def validate_child_id(self):
        return require_text(self.child_id, 'child_id')


@register_command
@dataclass(kw_only=True)
class AddLocation(Command):
    location_id: str
    make_primary: bool = False

    def validate_location_id(self):
        return require_text(self.location_id, 'location_id')


@register_command
@dataclass(kw_only=True)
class RemoveLocation(Command):
    location_id: str

    def validate_location_id(self):
        return require_text(self.location_id, 'location_id')


@register_command
@dataclass(kw_only=True)
class ChangePrimaryLocation(Command):
    location_id: str

    def validate_location_id(self):
        return require_text(self.location_id, 'location_id')


@register_command
@dataclass(kw_only=True)
class DissolveOrganization(Command):
    requires_child_statuses = True

    reason: str
    member_disposition: MemberDisposition = MemberDisposition.TERMINATED

    def validate_reason(self):
        return require_text(self.reason, 'reason')

    def validate_member_disposition(self):
        return _require_enum(self.member_disposition, MemberDisposition, 'member_disposition')


@register_command
@dataclass(kw_only=True)
class MergeOrganizations(Command):
    """Merge ``source_id`` into the organization the command is executed on."""
    source_id: str
    member_disposition: MemberDisposition = MemberDisposition.TRANSFERRED

    def validate_source_id(self):
        return require_text(self.source_id, 'source_id')

    def validate_member_disposition(self):
        return _require_enum(self.member_disposition, MemberDisposition, 'member_disposition')


@register_command
@dataclass(kw_only=True)
class AcquireOrganization(Command):
    """Acquire ``acquired_id`` as a child of the organization the command is executed on."""
    acquired_id: str
    maintains_independence: bool = True

    def validate_acquired_id(self):
        return require_text(self.acquired_id, 'acquired_id')


# Coordination steps


@register_command
@dataclass(kw_only=True)
class RegisterChild(Command):
    requires_ancestry = True

    child_id: str
    child_name: Optional[str] = None
    child_type: Optional[OrganizationType] = None
    acquisition: bool = False

    def validate_child_id(self):
        return require_text(self.child_id, 'child_id')


@register_command
@dataclass(kw_only=True)
class UnregisterChild(Command):
    """``rollback`` undoes a link a rejected command left behind, whatever the parent's status."""
    child_id: str
    rollback: bool = False

    def validate_child_id(self):
        return require_text(self.child_id, 'child_id')


@register_command
@dataclass(kw_only=True)
class AttachToParent(Command):
    parent_field = 'parent_id'

    parent_id: str

    def validate_parent_id(self):
        return require_text(self.parent_id, 'parent_id')


@register_command
@dataclass(kw_only=True)
class DetachFromParent(Command):
    parent_id: str

    def validate_parent_id(self):
        return require_text(self.parent_id, 'parent_id')


@register_command
@dataclass(kw_only=True)
class MergeInto(Command):
    target_id: str
    member_disposition: MemberDisposition = MemberDisposition.TRANSFERRED

    def validate_target_id(self):
        return require_text(self.target_id, 'target_id')


@register_command
@dataclass(kw_only=True)
class AbsorbOrganization(Command):
    requires_ancestry = True

    source_id: str
    member_disposition: MemberDisposition = MemberDisposition.TRANSFERRED

    def validate_source_id(self):
        return require_text(self.source_id, 'source_id')


@register_command
@dataclass(kw_only=True)
class AcceptAcquisition(Command):
    parent_field = 'acquirer_id'

    acquirer_id: str
    maintains_independence: bool = True

    def validate_acquirer_id(self):
        return require_text(self.acquirer_id, 'acquirer_id')
