"""
Events recorded against an organization aggregate
"""
from dataclasses import dataclass
from typing import Optional

from orgsource.models.enums import MemberDisposition, OrganizationStatus, OrganizationType
from orgsource.models.role import Role

from .base import DomainEvent, register_event


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationCreated(DomainEvent):
    name: str
    org_type: OrganizationType
    parent_id: Optional[str] = None
    primary_location_id: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationUpdated(DomainEvent):
    name: str


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationStatusChanged(DomainEvent):
    old_status: OrganizationStatus
    new_status: OrganizationStatus
    reason: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class MemberAdded(DomainEvent):
    person_id: str
    role: Role
    reports_to: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class MemberRemoved(DomainEvent):
    person_id: str
    reason: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class MemberRoleUpdated(DomainEvent):
    person_id: str
    old_role: Role
    new_role: Role


@register_event
@dataclass(frozen=True, kw_only=True)
class ReportingRelationshipChanged(DomainEvent):
    person_id: str
    old_manager_id: Optional[str] = None
    new_manager_id: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class ChildOrganizationAdded(DomainEvent):
    child_id: str
    child_name: Optional[str] = None
    child_type: Optional[OrganizationType] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class ChildOrganizationRemoved(DomainEvent):
    child_id: str


@register_event
@dataclass(frozen=True, kw_only=True)
class ParentOrganizationChanged(DomainEvent):
    old_parent_id: Optional[str] = None
    new_parent_id: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class LocationAdded(DomainEvent):
    location_id: str


@register_event
@dataclass(frozen=True, kw_only=True)
class LocationRemoved(DomainEvent):
    location_id: str


@register_event
@dataclass(frozen=True, kw_only=True)
class PrimaryLocationChanged(DomainEvent):
    old_location_id: Optional[str] = None
    new_location_id: Optional[str] = None


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationDissolved(DomainEvent):
    old_status: OrganizationStatus
    reason: str
    member_disposition: MemberDisposition


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationMerged(DomainEvent):
    """Recorded on the source organization. The source becomes Merged."""
    old_status: OrganizationStatus
    target_id: str
    member_disposition: MemberDisposition


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationAbsorbed(DomainEvent):
    """Recorded on the surviving organization of a merge."""
    source_id: str
    member_disposition: MemberDisposition


@register_event
@dataclass(frozen=True, kw_only=True)
class OrganizationAcquired(DomainEvent):
    """Recorded on the acquired organization. The acquirer becomes its parent."""
    acquirer_id: str
    maintains_independence: bool = True
    old_parent_id: Optional[str] = None
