"""Commands"""
from .base import COMMAND_TYPES, Command, command_from_dict, register_command
from .organization_commands import (
    AbsorbOrganization,
    AcceptAcquisition,
    AcquireOrganization,
    AddChildOrganization,
    AddLocation,
    AddMember,
    AttachToParent,
    ChangeOrganizationStatus,
    ChangePrimaryLocation,
    ChangeReportingRelationship,
    CreateOrganization,
    DetachFromParent,
    DissolveOrganization,
    MergeInto,
    MergeOrganizations,
    RegisterChild,
    RemoveChildOrganization,
    RemoveLocation,
    RemoveMember,
    UnregisterChild,
    UpdateMemberRole,
    UpdateOrganization,
)
