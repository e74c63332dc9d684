"""
Member value object
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from dateutil.parser import isoparse

from .role import Role


@dataclass(frozen=True)
class Member:
    """A person's membership in one organization. ``person_id`` is an opaque external reference."""

    person_id: str
    role: Role
    reports_to: Optional[str] = None
    joined_at: Optional[datetime] = None

    def as_dict(self, convert_datetime_to_iso_string: bool = False) -> Dict[str, Any]:
        joined_at = self.joined_at
        if convert_datetime_to_iso_string and joined_at is not None:
            joined_at = joined_at.isoformat()
        return {
            'person_id': self.person_id,
            'role': self.role.as_dict(),
            'reports_to': self.reports_to,
            'joined_at': joined_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Member':
        joined_at = data.get('joined_at')
        if isinstance(joined_at, str):
            joined_at = isoparse(joined_at)
        return cls(
            person_id=data['person_id'],
            role=Role.from_dict(data['role']),
            reports_to=data.get('reports_to'),
            joined_at=joined_at,
        )
