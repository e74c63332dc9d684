"""
Tests for folding events into organization state
"""
from dataclasses import replace

import pytest

from orgsource.aggregate import apply, decide, fold
from orgsource.commands import (
    AddLocation,
    ChangeReportingRelationship,
    RemoveLocation,
    UpdateMemberRole,
    UpdateOrganization,
)
from orgsource.errors import EventLogCorruptionError
from orgsource.events import MemberRoleUpdated, OrganizationCreated
from orgsource.models import OrganizationState, OrganizationStatus, OrganizationType, Role

from org_fixtures import ISSUED_AT, active_state, add_member


def _history():
    """Commands producing a history that touches members, locations and names."""
    return [
        add_member('ceo', Role.ceo()),
        add_member('cto', Role.director(), reports_to='ceo'),
        add_member('dev', reports_to='cto'),
        AddLocation(location_id='hq', issued_at=ISSUED_AT),
        AddLocation(location_id='lab', issued_at=ISSUED_AT),
        ChangeReportingRelationship(person_id='dev', new_manager_id='ceo'),
        UpdateMemberRole(person_id='cto', new_role=Role.ceo()),
        UpdateOrganization(name='Acme Holdings'),
        RemoveLocation(location_id='hq'),
    ]


def _full_events():
    base = active_state('org-1')
    state = base
    events = []
    for command in _history():
        new_events = decide(state, command)
        state = fold(new_events, state)
        events.extend(new_events)
    return base, events


def test_created_event_sets_initial_state():
    state = active_state()
    assert state.status is OrganizationStatus.ACTIVE
    assert state.name == 'Acme'
    assert state.org_type is OrganizationType.COMPANY
    assert state.version == 2
    assert state.created_at == ISSUED_AT
    assert state.creation_command_id is not None


def test_history_folds_to_expected_state():
    base, events = _full_events()
    state = fold(events, base)
    assert state.name == 'Acme Holdings'
    assert state.members['dev'].reports_to == 'ceo'
    assert state.members['cto'].role == Role.ceo()
    assert state.location_ids == frozenset({'lab'})
    assert state.primary_location_id == 'lab'
    assert state.version == base.version + len(events)


def test_fold_is_deterministic():
    base, events = _full_events()
    assert fold(events, base) == fold(list(events), base)


@pytest.mark.parametrize("split", range(0, 12))
def test_fold_at_any_split_point(split):
    """Verifies: folding a prefix then the rest equals folding everything at once."""
    base, events = _full_events()
    split = min(split, len(events))
    assert fold(events[split:], fold(events[:split], base)) == fold(events, base)


def test_fold_from_nothing_uses_first_event_entity():
    created = OrganizationCreated(
        event_id='e-1', entity_id='org-7', version=1, occurred_at=ISSUED_AT, causation_id='c-1',
        name='Seven', org_type=OrganizationType.TEAM)
    state = fold([created])
    assert state.entity_id == 'org-7'
    assert state.status is OrganizationStatus.CREATING
    assert state.creation_command_id == 'c-1'


def test_fold_of_nothing_needs_entity_id():
    with pytest.raises(ValueError):
        fold([])
    assert fold([], entity_id='org-1') == OrganizationState.empty('org-1')


def test_apply_returns_new_state():
    base, events = _full_events()
    after = apply(base, events[0])
    assert after is not base
    assert base.members == {}
    assert 'ceo' in after.members


def test_version_gap_is_corruption():
    base, events = _full_events()
    with pytest.raises(EventLogCorruptionError):
        apply(base, events[1])


def test_event_for_other_entity_is_corruption():
    base, events = _full_events()
    with pytest.raises(EventLogCorruptionError):
        apply(base, replace(events[0], entity_id='org-2'))


def test_unknown_member_reference_is_corruption():
    event = MemberRoleUpdated(
        event_id='e-9', entity_id='org-1', version=3, occurred_at=ISSUED_AT,
        person_id='ghost', old_role=Role.manager(), new_role=Role.director())
    with pytest.raises(EventLogCorruptionError):
        apply(active_state(), event)


def test_removing_primary_location_clears_it_before_promotion():
    state = active_state('org-1', AddLocation(location_id='hq'))
    removed = decide(state, RemoveLocation(location_id='hq'))
    assert apply(state, removed[0]).primary_location_id is None
    assert fold(removed, state).primary_location_id is None
