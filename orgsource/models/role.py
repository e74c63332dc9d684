"""
Role value object
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from .enums import Permission, RoleLevel


@dataclass(frozen=True)
class Role:
    """A named position with a level and a permission set. Roles are values attached to members."""

    title: str
    level: RoleLevel = RoleLevel.MID
    code: Optional[str] = None
    permissions: FrozenSet[Permission] = field(default_factory=frozenset)

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions

    def with_permissions(self, *permissions: Permission) -> 'Role':
        return Role(self.title, self.level, self.code, self.permissions | frozenset(permissions))

    def as_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'level': self.level.value,
            'code': self.code,
            'permissions': sorted(p.value for p in self.permissions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Role':
        """
        Load Role from dict.

        Raises:
            ValueError: If the level or a permission is not a known value.
        """
        if isinstance(data, cls):
            return data
        return cls(
            title=data.get('title'),
            level=RoleLevel(data.get('level', RoleLevel.MID.value)),
            code=data.get('code'),
            permissions=frozenset(Permission(p) for p in data.get('permissions') or []),
        )

    @classmethod
    def ceo(cls) -> 'Role':
        return cls('Chief Executive Officer', RoleLevel.EXECUTIVE, 'CEO', frozenset(Permission))

    @classmethod
    def director(cls) -> 'Role':
        return cls('Director', RoleLevel.DIRECTOR, 'DIR', frozenset({
            Permission.VIEW_ORGANIZATION,
            Permission.UPDATE_ORGANIZATION,
            Permission.ADD_MEMBER,
            Permission.REMOVE_MEMBER,
            Permission.UPDATE_MEMBER_ROLE,
            Permission.VIEW_MEMBERS,
            Permission.CREATE_SUB_UNIT,
            Permission.VIEW_BUDGET,
            Permission.VIEW_REPORTS,
            Permission.CREATE_REPORTS,
        }))

    @classmethod
    def manager(cls) -> 'Role':
        return cls('Manager', RoleLevel.MANAGER, 'MGR', frozenset({
            Permission.VIEW_ORGANIZATION,
            Permission.ADD_MEMBER,
            Permission.UPDATE_MEMBER_ROLE,
            Permission.VIEW_MEMBERS,
            Permission.VIEW_BUDGET,
            Permission.VIEW_REPORTS,
            Permission.CREATE_REPORTS,
        }))

    @classmethod
    def software_engineer(cls) -> 'Role':
        return cls('Software Engineer', RoleLevel.MID, 'SW_ENG', frozenset({
            Permission.VIEW_ORGANIZATION,
            Permission.VIEW_MEMBERS,
            Permission.VIEW_REPORTS,
        }))
