"""
Tests for the organization status lifecycle
"""
import itertools

import pytest

from orgsource.aggregate import ALLOWED_TRANSITIONS, INITIAL_STATUS, allowed_targets, can_transition
from orgsource.aggregate.transitions import check_transition
from orgsource.errors import InvalidStatusTransition
from orgsource.models import OrganizationStatus

S = OrganizationStatus

EXPECTED = {
    (S.CREATING, S.ACTIVE),
    (S.CREATING, S.DISSOLVED),
    (S.ACTIVE, S.INACTIVE),
    (S.ACTIVE, S.SUSPENDED),
    (S.ACTIVE, S.DISSOLVED),
    (S.ACTIVE, S.MERGED),
    (S.INACTIVE, S.ACTIVE),
    (S.INACTIVE, S.DISSOLVED),
    (S.SUSPENDED, S.ACTIVE),
    (S.SUSPENDED, S.DISSOLVED),
}


def test_initial_status_is_creating():
    assert INITIAL_STATUS is S.CREATING


def test_table_covers_every_status():
    assert set(ALLOWED_TRANSITIONS) == set(S)


@pytest.mark.parametrize("current, requested", list(itertools.product(S, S)))
def test_every_status_pair(current, requested):
    """Verifies: exactly the listed pairs are allowed, every other pair raises."""
    allowed = (current, requested) in EXPECTED
    assert can_transition(current, requested) is allowed
    if allowed:
        check_transition(current, requested)
    else:
        with pytest.raises(InvalidStatusTransition):
            check_transition(current, requested)


@pytest.mark.parametrize("status", [S.DISSOLVED, S.MERGED])
def test_terminal_statuses_have_no_targets(status):
    assert allowed_targets(status) == frozenset()
    with pytest.raises(InvalidStatusTransition) as excinfo:
        check_transition(status, S.ACTIVE)
    assert "terminal" in str(excinfo.value)


def test_unknown_current_status_has_no_targets():
    assert allowed_targets(None) == frozenset()
    assert not can_transition(None, S.ACTIVE)


def test_error_carries_both_statuses():
    with pytest.raises(InvalidStatusTransition) as excinfo:
        check_transition(S.CREATING, S.SUSPENDED)
    assert excinfo.value.current_status is S.CREATING
    assert excinfo.value.requested_status is S.SUSPENDED
    assert str(excinfo.value) == "Cannot transition from Creating to Suspended"
