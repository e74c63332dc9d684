"""
Models for orgsource
"""

from .enums import (
    MemberDisposition,
    OrganizationStatus,
    OrganizationType,
    Permission,
    RoleLevel,
    SizeCategory,
)
from .role import Role
from .member import Member
from .organization import OrganizationState
from .payload import PayloadModel
