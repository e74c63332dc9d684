"""
OrganizationState, the current snapshot of one organization aggregate
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from dateutil.parser import isoparse

from .enums import OrganizationStatus, OrganizationType
from .member import Member


@dataclass(frozen=True)
class OrganizationState:
    """
    Folded state of one organization.

    Instances are never mutated. The reducer returns a new instance for every
    applied event and ``version`` equals the number of events folded so far.
    """

    entity_id: str
    version: int = 0
    name: Optional[str] = None
    org_type: Optional[OrganizationType] = None
    status: Optional[OrganizationStatus] = None
    parent_id: Optional[str] = None
    child_ids: FrozenSet[str] = field(default_factory=frozenset)
    location_ids: FrozenSet[str] = field(default_factory=frozenset)
    primary_location_id: Optional[str] = None
    members: Dict[str, Member] = field(default_factory=dict)
    merged_into: Optional[str] = None
    acquired_by: Optional[str] = None
    absorbed_ids: FrozenSet[str] = field(default_factory=frozenset)
    creation_command_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def empty(cls, entity_id: str) -> 'OrganizationState':
        return cls(entity_id=entity_id)

    @property
    def exists(self) -> bool:
        return self.status is not None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal

    @property
    def member_count(self) -> int:
        return len(self.members)

    def direct_reports(self, person_id: str) -> List[str]:
        """Person ids of members whose reports-to reference points at ``person_id``."""
        return sorted(pid for pid, member in self.members.items() if member.reports_to == person_id)

    def manager_chain(self, person_id: str) -> List[str]:
        """Managers of ``person_id``, nearest first."""
        chain = []
        seen = {person_id}
        current = self.members.get(person_id)
        while current is not None and current.reports_to is not None:
            if current.reports_to in seen:
                break
            chain.append(current.reports_to)
            seen.add(current.reports_to)
            current = self.members.get(current.reports_to)
        return chain

    def as_dict(self, convert_datetime_to_iso_string: bool = False) -> Dict[str, Any]:
        """
        Serialize the state for snapshot storage.

        Sets are emitted as sorted lists so equal states produce equal dicts.
        """
        def _dt(value):
            if convert_datetime_to_iso_string and value is not None:
                return value.isoformat()
            return value

        return {
            'entity_id': self.entity_id,
            'version': self.version,
            'name': self.name,
            'org_type': self.org_type.value if self.org_type else None,
            'status': self.status.value if self.status else None,
            'parent_id': self.parent_id,
            'child_ids': sorted(self.child_ids),
            'location_ids': sorted(self.location_ids),
            'primary_location_id': self.primary_location_id,
            'members': {
                pid: member.as_dict(convert_datetime_to_iso_string)
                for pid, member in sorted(self.members.items())
            },
            'merged_into': self.merged_into,
            'acquired_by': self.acquired_by,
            'absorbed_ids': sorted(self.absorbed_ids),
            'creation_command_id': self.creation_command_id,
            'created_at': _dt(self.created_at),
            'updated_at': _dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrganizationState':
        def _dt(value):
            return isoparse(value) if isinstance(value, str) else value

        org_type = data.get('org_type')
        status = data.get('status')
        return cls(
            entity_id=data['entity_id'],
            version=int(data.get('version', 0)),
            name=data.get('name'),
            org_type=OrganizationType(org_type) if org_type else None,
            status=OrganizationStatus(status) if status else None,
            parent_id=data.get('parent_id'),
            child_ids=frozenset(data.get('child_ids') or []),
            location_ids=frozenset(data.get('location_ids') or []),
            primary_location_id=data.get('primary_location_id'),
            members={
                pid: Member.from_dict(member)
                for pid, member in (data.get('members') or {}).items()
            },
            merged_into=data.get('merged_into'),
            acquired_by=data.get('acquired_by'),
            absorbed_ids=frozenset(data.get('absorbed_ids') or []),
            creation_command_id=data.get('creation_command_id'),
            created_at=_dt(data.get('created_at')),
            updated_at=_dt(data.get('updated_at')),
        )
