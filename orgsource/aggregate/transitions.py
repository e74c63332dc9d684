"""
Organization status lifecycle
"""
from typing import Dict, FrozenSet, Optional

from orgsource.errors import InvalidStatusTransition
from orgsource.models.enums import OrganizationStatus

INITIAL_STATUS = OrganizationStatus.CREATING

ALLOWED_TRANSITIONS: Dict[OrganizationStatus, FrozenSet[OrganizationStatus]] = {
    OrganizationStatus.CREATING: frozenset({
        OrganizationStatus.ACTIVE,
        OrganizationStatus.DISSOLVED,
    }),
    OrganizationStatus.ACTIVE: frozenset({
        OrganizationStatus.INACTIVE,
        OrganizationStatus.SUSPENDED,
        OrganizationStatus.DISSOLVED,
        OrganizationStatus.MERGED,
    }),
    OrganizationStatus.INACTIVE: frozenset({
        OrganizationStatus.ACTIVE,
        OrganizationStatus.DISSOLVED,
    }),
    OrganizationStatus.SUSPENDED: frozenset({
        OrganizationStatus.ACTIVE,
        OrganizationStatus.DISSOLVED,
    }),
    OrganizationStatus.DISSOLVED: frozenset(),
    OrganizationStatus.MERGED: frozenset(),
}


def allowed_targets(current: OrganizationStatus) -> FrozenSet[OrganizationStatus]:
    return ALLOWED_TRANSITIONS.get(current, frozenset())


def can_transition(current: OrganizationStatus, requested: OrganizationStatus) -> bool:
    return requested in allowed_targets(current)


def check_transition(current: OrganizationStatus, requested: OrganizationStatus, detail: Optional[str] = None):
    """
    Raises:
        InvalidStatusTransition: If ``current -> requested`` is not in the table.
    """
    if not can_transition(current, requested):
        if detail is None and current is not None and current.is_terminal:
            detail = f"{current} is terminal"
        raise InvalidStatusTransition(current, requested, detail)
