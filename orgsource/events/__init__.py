"""Domain events"""
from .base import DomainEvent, EVENT_TYPES, event_from_dict, register_event
from .organization_events import (
    ChildOrganizationAdded,
    ChildOrganizationRemoved,
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
