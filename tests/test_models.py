"""
Tests for the organization value objects and enums
"""
from datetime import datetime, timezone

import pytest

from orgsource.models import (
    Member,
    OrganizationState,
    OrganizationStatus,
    OrganizationType,
    Permission,
    Role,
    RoleLevel,
    SizeCategory,
)


@pytest.mark.parametrize("status, terminal, members, restructure", [
    (OrganizationStatus.CREATING, False, True, True),
    (OrganizationStatus.ACTIVE, False, True, True),
    (OrganizationStatus.INACTIVE, False, True, True),
    (OrganizationStatus.SUSPENDED, False, False, False),
    (OrganizationStatus.DISSOLVED, True, False, False),
    (OrganizationStatus.MERGED, True, False, False),
])
def test_status_capabilities(status, terminal, members, restructure):
    """Verifies: each status reports whether it is terminal and what it permits."""
    assert status.is_terminal is terminal
    assert status.can_have_members is members
    assert status.can_be_restructured is restructure


def test_enum_string_values():
    assert str(OrganizationType.NON_PROFIT) == 'NonProfit'
    assert OrganizationStatus('Active') is OrganizationStatus.ACTIVE
    assert len(OrganizationType) == 11


def test_role_level_ranks():
    """Verifies: Executive ranks highest and management stops at Lead."""
    assert RoleLevel.EXECUTIVE.rank == 1
    assert RoleLevel.INTERN.rank == 10
    assert RoleLevel.DIRECTOR.outranks(RoleLevel.MANAGER)
    assert not RoleLevel.JUNIOR.outranks(RoleLevel.SENIOR)
    assert RoleLevel.LEAD.is_management
    assert not RoleLevel.SENIOR.is_management


@pytest.mark.parametrize("count, category", [
    (0, SizeCategory.STARTUP),
    (10, SizeCategory.STARTUP),
    (11, SizeCategory.SMALL),
    (50, SizeCategory.SMALL),
    (51, SizeCategory.MEDIUM),
    (250, SizeCategory.MEDIUM),
    (251, SizeCategory.LARGE),
    (1000, SizeCategory.LARGE),
    (1001, SizeCategory.ENTERPRISE),
    (5000, SizeCategory.ENTERPRISE),
    (5001, SizeCategory.MEGA_CORP),
    (100000, SizeCategory.MEGA_CORP),
])
def test_size_category_boundaries(count, category):
    assert SizeCategory.from_member_count(count) is category


def test_size_category_ranges():
    assert SizeCategory.SMALL.member_range == (11, 50)
    assert SizeCategory.MEGA_CORP.member_range == (5001, None)


class TestRole:
    def test_ceo_has_every_permission(self):
        ceo = Role.ceo()
        assert ceo.level is RoleLevel.EXECUTIVE
        assert all(ceo.has_permission(p) for p in Permission)

    def test_software_engineer_cannot_add_members(self):
        engineer = Role.software_engineer()
        assert engineer.has_permission(Permission.VIEW_MEMBERS)
        assert not engineer.has_permission(Permission.ADD_MEMBER)

    def test_with_permissions_returns_new_role(self):
        engineer = Role.software_engineer()
        extended = engineer.with_permissions(Permission.EXPORT_DATA)
        assert extended.has_permission(Permission.EXPORT_DATA)
        assert not engineer.has_permission(Permission.EXPORT_DATA)
        assert extended.title == engineer.title

    def test_dict_conversion(self):
        role = Role.manager()
        data = role.as_dict()
        assert data['level'] == 'Manager'
        assert data['permissions'] == sorted(data['permissions'])
        assert Role.from_dict(data) == role

    def test_from_dict_defaults(self):
        role = Role.from_dict({'title': 'Analyst'})
        assert role.level is RoleLevel.MID
        assert role.permissions == frozenset()

    def test_from_dict_rejects_unknown_level(self):
        with pytest.raises(ValueError):
            Role.from_dict({'title': 'Analyst', 'level': 'Overlord'})


def test_member_dict_with_iso_dates():
    joined_at = datetime(2024, 3, 1, tzinfo=timezone.utc)
    member = Member('p-1', Role.director(), reports_to='p-0', joined_at=joined_at)
    data = member.as_dict(convert_datetime_to_iso_string=True)
    assert data['joined_at'] == joined_at.isoformat()
    assert Member.from_dict(data) == member


class TestOrganizationState:
    def _state(self):
        engineer = Role.software_engineer()
        return OrganizationState(
            entity_id='org-1',
            version=4,
            name='Acme',
            org_type=OrganizationType.COMPANY,
            status=OrganizationStatus.ACTIVE,
            child_ids=frozenset({'org-3', 'org-2'}),
            location_ids=frozenset({'loc-1'}),
            primary_location_id='loc-1',
            members={
                'ceo': Member('ceo', Role.ceo()),
                'cto': Member('cto', Role.director(), reports_to='ceo'),
                'dev-2': Member('dev-2', engineer, reports_to='cto'),
                'dev-1': Member('dev-1', engineer, reports_to='cto'),
            },
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    def test_empty_state_does_not_exist(self):
        state = OrganizationState.empty('org-9')
        assert not state.exists
        assert not state.is_terminal
        assert state.version == 0

    def test_direct_reports_are_sorted(self):
        assert self._state().direct_reports('cto') == ['dev-1', 'dev-2']
        assert self._state().direct_reports('dev-1') == []

    def test_manager_chain(self):
        state = self._state()
        assert state.manager_chain('dev-1') == ['cto', 'ceo']
        assert state.manager_chain('ceo') == []
        assert state.member_count == 4

    def test_snapshot_dict_conversion(self):
        state = self._state()
        data = state.as_dict(convert_datetime_to_iso_string=True)
        assert data['child_ids'] == ['org-2', 'org-3']
        assert data['status'] == 'Active'
        assert isinstance(data['created_at'], str)
        assert OrganizationState.from_dict(data) == state
