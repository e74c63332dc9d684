"""Enums for the organization domain"""
from enum import Enum
from typing import Optional, Tuple


class OrganizationType(str, Enum):
    """Closed set of organizational unit types"""
    COMPANY = 'Company'
    DIVISION = 'Division'
    DEPARTMENT = 'Department'
    TEAM = 'Team'
    PROJECT = 'Project'
    PARTNER = 'Partner'
    CUSTOMER = 'Customer'
    VENDOR = 'Vendor'
    NON_PROFIT = 'NonProfit'
    GOVERNMENT = 'Government'
    OTHER = 'Other'

    def __str__(self):
        return str(self.value)


class OrganizationStatus(str, Enum):
    """Lifecycle status of an organization"""
    CREATING = 'Creating'
    ACTIVE = 'Active'
    INACTIVE = 'Inactive'
    SUSPENDED = 'Suspended'
    DISSOLVED = 'Dissolved'
    MERGED = 'Merged'

    def __str__(self):
        return str(self.value)

    @property
    def is_terminal(self) -> bool:
        return self in (OrganizationStatus.DISSOLVED, OrganizationStatus.MERGED)

    @property
    def can_have_members(self) -> bool:
        return self in (OrganizationStatus.CREATING, OrganizationStatus.ACTIVE, OrganizationStatus.INACTIVE)

    @property
    def can_be_restructured(self) -> bool:
        return self in (OrganizationStatus.CREATING, OrganizationStatus.ACTIVE, OrganizationStatus.INACTIVE)


class RoleLevel(str, Enum):
    """Role levels, highest rank first"""
    EXECUTIVE = 'Executive'
    VICE_PRESIDENT = 'VicePresident'
    DIRECTOR = 'Director'
    MANAGER = 'Manager'
    LEAD = 'Lead'
    SENIOR = 'Senior'
    MID = 'Mid'
    JUNIOR = 'Junior'
    ENTRY = 'Entry'
    INTERN = 'Intern'

    def __str__(self):
        return str(self.value)

    @property
    def rank(self) -> int:
        """Numeric rank, 1 is the highest."""
        return list(RoleLevel).index(self) + 1

    def outranks(self, other: 'RoleLevel') -> bool:
        return self.rank < other.rank

    @property
    def is_management(self) -> bool:
        return self.rank <= RoleLevel.LEAD.rank


class Permission(str, Enum):
    """Permissions that can be attached to a role"""
    CREATE_ORGANIZATION = 'CreateOrganization'
    UPDATE_ORGANIZATION = 'UpdateOrganization'
    DELETE_ORGANIZATION = 'DeleteOrganization'
    VIEW_ORGANIZATION = 'ViewOrganization'
    ADD_MEMBER = 'AddMember'
    REMOVE_MEMBER = 'RemoveMember'
    UPDATE_MEMBER_ROLE = 'UpdateMemberRole'
    VIEW_MEMBERS = 'ViewMembers'
    CREATE_SUB_UNIT = 'CreateSubUnit'
    REMOVE_SUB_UNIT = 'RemoveSubUnit'
    MODIFY_HIERARCHY = 'ModifyHierarchy'
    VIEW_BUDGET = 'ViewBudget'
    APPROVE_BUDGET = 'ApproveBudget'
    MODIFY_BUDGET = 'ModifyBudget'
    VIEW_REPORTS = 'ViewReports'
    CREATE_REPORTS = 'CreateReports'
    EXPORT_DATA = 'ExportData'

    def __str__(self):
        return str(self.value)


class MemberDisposition(str, Enum):
    """What happens to members when an organization is dissolved or merged"""
    TERMINATED = 'Terminated'
    TRANSFERRED = 'Transferred'
    CONVERTED_TO_CONTRACTORS = 'ConvertedToContractors'
    OTHER = 'Other'

    def __str__(self):
        return str(self.value)


class SizeCategory(str, Enum):
    """Size classification derived from member count"""
    STARTUP = 'Startup'
    SMALL = 'Small'
    MEDIUM = 'Medium'
    LARGE = 'Large'
    ENTERPRISE = 'Enterprise'
    MEGA_CORP = 'MegaCorp'

    def __str__(self):
        return str(self.value)

    @classmethod
    def from_member_count(cls, count: int) -> 'SizeCategory':
        for category in cls:
            _, high = category.member_range
            if high is None or count <= high:
                return category
        return cls.MEGA_CORP

    @property
    def member_range(self) -> Tuple[int, Optional[int]]:
        return _SIZE_RANGES[self]


_SIZE_RANGES = {
    SizeCategory.STARTUP: (0, 10),
    SizeCategory.SMALL: (11, 50),
    SizeCategory.MEDIUM: (51, 250),
    SizeCategory.LARGE: (251, 1000),
    SizeCategory.ENTERPRISE: (1001, 5000),
    SizeCategory.MEGA_CORP: (5001, None),
}
