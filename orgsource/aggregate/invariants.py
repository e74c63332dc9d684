"""Structural checks that must hold for every folded organization state"""
from typing import List

from orgsource.models.organization import OrganizationState

from .validator import creates_reporting_cycle


def check_invariants(state: OrganizationState) -> List[str]:
    """Return a description of every invariant ``state`` violates. An empty list means the state is sound."""
    problems = []
    if not state.exists:
        return problems

    if state.parent_id == state.entity_id:
        problems.append(f"{state.entity_id} is its own parent")
    if state.entity_id in state.child_ids:
        problems.append(f"{state.entity_id} is its own child")
    if state.parent_id is not None and state.parent_id in state.child_ids:
        problems.append(f"{state.parent_id} is both parent and child of {state.entity_id}")

    graph = {pid: member.reports_to for pid, member in state.members.items()}
    for person_id, manager_id in graph.items():
        if manager_id is None:
            continue
        if manager_id not in graph:
            problems.append(f"{person_id} reports to non-member {manager_id}")
        elif creates_reporting_cycle(graph, person_id, manager_id):
            problems.append(f"{person_id} is part of a reporting cycle")

    if state.primary_location_id is not None and state.primary_location_id not in state.location_ids:
        problems.append(f"primary location {state.primary_location_id} is not an associated location")
    if state.location_ids and state.primary_location_id is None:
        problems.append(f"{state.entity_id} has locations but no primary location")

    if state.merged_into == state.entity_id:
        problems.append(f"{state.entity_id} is merged into itself")
    return problems
