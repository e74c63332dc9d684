"""
Tests for command validation and payload loading
"""
from datetime import datetime

import pytest

from orgsource.commands import (
    COMMAND_TYPES,
    AddMember,
    CreateOrganization,
    DissolveOrganization,
    RemoveMember,
    UpdateMemberRole,
    UpdateOrganization,
    command_from_dict,
)
from orgsource.errors import CommandValidationError
from orgsource.models import MemberDisposition, OrganizationType, Role, RoleLevel


def test_command_defaults():
    command = UpdateOrganization(name='Acme')
    assert len(command.command_id) == 32
    assert isinstance(command.issued_at, datetime)
    assert command.issued_at.tzinfo is not None
    assert command.command_type == 'UpdateOrganization'


def test_each_command_gets_its_own_id():
    assert UpdateOrganization(name='a').command_id != UpdateOrganization(name='a').command_id


def test_registry_holds_public_and_step_commands():
    assert 'MergeOrganizations' in COMMAND_TYPES
    assert 'RegisterChild' in COMMAND_TYPES
    assert len(COMMAND_TYPES) == 22


def test_valid_command_passes():
    CreateOrganization(name='Acme', org_type=OrganizationType.COMPANY).validate()


def test_validate_collects_every_error():
    """Verifies: all field problems are reported together."""
    command = CreateOrganization(name='  ', org_type='Spaceship', parent_id='')
    with pytest.raises(CommandValidationError) as excinfo:
        command.validate()
    assert len(excinfo.value.errors) == 3
    assert "name must be a non-empty string" in excinfo.value.errors
    assert excinfo.value.as_dict()['retryable'] is False


def test_add_member_requires_a_role():
    with pytest.raises(CommandValidationError) as excinfo:
        AddMember(person_id='p-1', role='engineer').validate()
    assert excinfo.value.errors == ["role must be a Role"]


def test_role_level_must_be_a_role_level():
    with pytest.raises(CommandValidationError) as excinfo:
        UpdateMemberRole(person_id='p-1', new_role=Role('Lead Engineer', 'Lead')).validate()
    assert len(excinfo.value.errors) == 1
    assert excinfo.value.errors[0].startswith("new_role.level must be one of: ")


def test_new_manager_requires_reassign_reports():
    with pytest.raises(CommandValidationError):
        RemoveMember(person_id='p-1', new_manager_id='p-2').validate()
    RemoveMember(person_id='p-1', reassign_reports=True, new_manager_id='p-2').validate()


def test_dissolve_requires_reason():
    with pytest.raises(CommandValidationError):
        DissolveOrganization(reason='').validate()


class TestCommandFromDict:
    def test_loads_nested_role(self):
        command = command_from_dict({
            'command_type': 'AddMember',
            'command_id': 'c-42',
            'issued_at': '2024-05-01T10:00:00+00:00',
            'person_id': 'p-1',
            'role': {'title': 'Lead Engineer', 'level': 'Lead', 'permissions': ['ViewMembers']},
        })
        assert isinstance(command, AddMember)
        assert command.command_id == 'c-42'
        assert command.role.level is RoleLevel.LEAD
        assert command.issued_at.year == 2024

    def test_uses_defaults_for_omitted_fields(self):
        command = command_from_dict({'command_type': 'DissolveOrganization', 'reason': 'closed'})
        assert command.member_disposition is MemberDisposition.TERMINATED
        assert command.command_id

    def test_unknown_command_type(self):
        with pytest.raises(CommandValidationError) as excinfo:
            command_from_dict({'command_type': 'LaunchRocket'})
        assert "Unknown command type" in str(excinfo.value)

    def test_payload_must_be_an_object(self):
        with pytest.raises(CommandValidationError):
            command_from_dict(['AddMember'])

    def test_bad_enum_value(self):
        with pytest.raises(CommandValidationError):
            command_from_dict({'command_type': 'CreateOrganization', 'name': 'Acme', 'org_type': 'Guild'})

    def test_missing_required_field(self):
        with pytest.raises(CommandValidationError):
            command_from_dict({'command_type': 'CreateOrganization', 'name': 'Acme'})

    def test_loaded_command_is_validated(self):
        with pytest.raises(CommandValidationError):
            command_from_dict({'command_type': 'UpdateOrganization', 'name': ''})

    def test_command_dict_conversion(self):
        command = AddMember(person_id='p-1', role=Role.manager(), reports_to='p-0')
        assert command_from_dict(command.as_dict(True)) == command
