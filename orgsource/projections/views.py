"""
Read views maintained by the projection builder
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Set

from orgsource.models.enums import OrganizationStatus, OrganizationType, SizeCategory
from orgsource.models.member import Member


@dataclass(kw_only=True)
class OrganizationView:
    """Denormalized, mutable read copy of one organization."""

    entity_id: str
    name: Optional[str] = None
    org_type: Optional[OrganizationType] = None
    status: Optional[OrganizationStatus] = None
    parent_id: Optional[str] = None
    child_ids: Set[str] = field(default_factory=set)
    location_ids: Set[str] = field(default_factory=set)
    primary_location_id: Optional[str] = None
    members: Dict[str, Member] = field(default_factory=dict)
    merged_into: Optional[str] = None
    acquired_by: Optional[str] = None
    absorbed_ids: Set[str] = field(default_factory=set)
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def size_category(self) -> SizeCategory:
        return SizeCategory.from_member_count(len(self.members))

    def as_dict(self) -> Dict[str, Any]:
        return {
            'entity_id': self.entity_id,
            'name': self.name,
            'org_type': str(self.org_type) if self.org_type else None,
            'status': str(self.status) if self.status else None,
            'parent_id': self.parent_id,
            'child_ids': sorted(self.child_ids),
            'location_ids': sorted(self.location_ids),
            'primary_location_id': self.primary_location_id,
            'member_count': len(self.members),
            'merged_into': self.merged_into,
            'acquired_by': self.acquired_by,
            'absorbed_ids': sorted(self.absorbed_ids),
            'version': self.version,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(kw_only=True)
class OrganizationStatistics:
    entity_id: str
    member_count: int = 0
    size_category: SizeCategory = SizeCategory.STARTUP
    members_by_role: Dict[str, int] = field(default_factory=dict)
    members_by_level: Dict[str, int] = field(default_factory=dict)
    management_count: int = 0
    reporting_depth: int = 0
    location_count: int = 0
    primary_location_id: Optional[str] = None
    child_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'entity_id': self.entity_id,
            'member_count': self.member_count,
            'size_category': str(self.size_category),
            'members_by_role': dict(sorted(self.members_by_role.items())),
            'members_by_level': dict(sorted(self.members_by_level.items())),
            'management_count': self.management_count,
            'reporting_depth': self.reporting_depth,
            'location_count': self.location_count,
            'primary_location_id': self.primary_location_id,
            'child_count': self.child_count,
        }
