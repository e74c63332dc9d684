"""
Repository for the organization aggregate
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from orgsource.aggregate import DecisionContext, check_invariants, decide, fold, link_of, plan, unlink
from orgsource.commands import Command, command_from_dict
from orgsource.data.base import EventLog, SnapshotStore
from orgsource.errors import (
    BusinessRuleViolation,
    CircularHierarchy,
    CommandValidationError,
    ConcurrencyConflict,
    EntityNotFound,
    EventLogCorruptionError,
    InvariantViolation,
    OrgSourceError,
)
from orgsource.events import DomainEvent
from orgsource.messaging.publisher import EventPublisher
from orgsource.models.organization import OrganizationState

logger = logging.getLogger(__name__)

ROLLBACK_ATTEMPTS = 5


@dataclass
class ExecutionResult:
    """
    Outcome of ``OrganizationRepository.execute``.

    ``events`` are the events that were appended, also when ``error`` is set
    for a coordinated command that stopped after its first step
    (``partial`` is then True) or for a rejected link that was rolled back.
    ``published`` is False when the appended events could not be handed to
    the publisher.
    """

    events: List[DomainEvent] = field(default_factory=list)
    error: Optional[OrgSourceError] = None
    partial: bool = False
    published: bool = True

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_conflict(self) -> bool:
        return isinstance(self.error, ConcurrencyConflict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'ok': self.ok,
            'events': [e.as_dict(convert_datetime_to_iso_string=True) for e in self.events],
            'error': self.error.as_dict() if self.error is not None else None,
            'partial': self.partial,
            'published': self.published,
        }


class OrganizationRepository:
    """
    Loads organizations from the event log, decides commands and appends the
    resulting events under an optimistic concurrency check.

    The repository never retries a command. A ``ConcurrencyConflict`` is
    returned to the caller, who reloads by calling ``execute`` again with the
    same command. Only the steps that roll back a rejected link are decided
    again after a conflict.
    """

    def __init__(
        self,
        event_log: EventLog,
        snapshot_store: SnapshotStore = None,
        snapshot_frequency: int = 50,
        publisher: EventPublisher = None
    ):
        self.event_log = event_log
        self.snapshot_store = snapshot_store
        self.snapshot_frequency = snapshot_frequency
        self.publisher = publisher

    def load(self, entity_id: str) -> OrganizationState:
        """
        Fold the organization from its latest snapshot plus the events after it.

        Returns an empty state (``exists`` is False) for an unknown id.

        Raises:
            EventLogCorruptionError: If the stored events cannot be replayed.
        """
        state = None
        if self.snapshot_store is not None:
            state = self.snapshot_store.get(entity_id)
        if state is None:
            state = OrganizationState.empty(entity_id)
        tail = self.event_log.read(entity_id, state.version)
        return fold(tail, state)

    def get(self, entity_id: str) -> OrganizationState:
        """
        Raises:
            EntityNotFound: If the organization has no events.
        """
        state = self.load(entity_id)
        if not state.exists:
            raise EntityNotFound(entity_id)
        return state

    def _load_cached(self, entity_id: str, cache: Dict[str, OrganizationState]) -> OrganizationState:
        if entity_id not in cache:
            cache[entity_id] = self.load(entity_id)
        return cache[entity_id]

    def _chain_from(self, entity_id: Optional[str], cache) -> Tuple[str, ...]:
        """``entity_id`` followed by its ancestors, nearest first."""
        chain = []
        seen = set()
        current = entity_id
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self._load_cached(current, cache).parent_id
        return tuple(chain)

    def _child_statuses(self, state: OrganizationState, cache):
        return {
            child_id: self._load_cached(child_id, cache).status
            for child_id in sorted(state.child_ids)
        }

    def _context(self, state: OrganizationState, command: Command, cache) -> DecisionContext:
        ancestor_ids = ()
        parent_chain = ()
        child_statuses = {}
        if command.requires_ancestry:
            ancestor_ids = tuple(a for a in self._chain_from(state.parent_id, cache) if a != state.entity_id)
        if command.parent_field is not None:
            parent_chain = self._chain_from(getattr(command, command.parent_field), cache)
        if command.requires_child_statuses:
            child_statuses = self._child_statuses(state, cache)
        return DecisionContext(ancestor_ids=ancestor_ids, parent_chain=parent_chain, child_statuses=child_statuses)

    def _decide_step(self, entity_id: str, command: Command, cache):
        state = self._load_cached(entity_id, cache)
        events = decide(state, command, self._context(state, command, cache))
        new_state = fold(events, state)
        if events:
            problems = check_invariants(new_state)
            if problems:
                raise InvariantViolation(entity_id, problems)
        cache[entity_id] = new_state
        return state, new_state, events

    def _snapshot(self, old_state: OrganizationState, new_state: OrganizationState):
        if self.snapshot_store is None or self.snapshot_frequency <= 0:
            return
        if new_state.version // self.snapshot_frequency > old_state.version // self.snapshot_frequency:
            self.snapshot_store.save(new_state)
            logger.debug("Saved snapshot of %s at version %d", new_state.entity_id, new_state.version)

    def _publish(self, events: List[DomainEvent]) -> bool:
        if self.publisher is None or not events:
            return True
        return self.publisher.publish(events)

    def _append_reloading(self, entity_id: str, command: Command) -> List[DomainEvent]:
        """
        Decide and append one rollback step against the latest state, deciding
        again after a conflict.

        Raises:
            ConcurrencyConflict: If every attempt conflicts.
        """
        for attempt in range(1, ROLLBACK_ATTEMPTS + 1):
            state = self.load(entity_id)
            if not state.exists:
                return []
            events = decide(state, command)
            if not events:
                return []
            try:
                self.event_log.append(entity_id, state.version, events)
            except ConcurrencyConflict:
                if attempt == ROLLBACK_ATTEMPTS:
                    raise
                continue
            self._snapshot(state, fold(events, state))
            return events

    def _roll_back_link(self, command: Command, link: Tuple[str, str], appended: List[DomainEvent],
                        error: OrgSourceError) -> ExecutionResult:
        """Remove the part of ``link`` that is present and report ``error``."""
        parent_id, child_id = link
        events = list(appended)
        try:
            for step_entity_id, step_command in unlink(parent_id, child_id, command):
                events.extend(self._append_reloading(step_entity_id, step_command))
        except ConcurrencyConflict as e:
            logger.error("Could not roll back the link from %s to %s for %s %s: %s",
                         parent_id, child_id, command.command_type, command.command_id, e)
            return ExecutionResult(events=events, error=e, partial=True, published=self._publish(events))
        if len(events) > len(appended):
            logger.warning("Rolled back the link from %s to %s for %s %s: %s",
                           parent_id, child_id, command.command_type, command.command_id, error)
        return ExecutionResult(events=events, error=error, published=self._publish(events))

    def execute(self, entity_id: str, command: Command) -> ExecutionResult:
        """
        Validate, decide and append ``command`` against ``entity_id``.

        Every step of a coordinated command is decided before anything is
        appended. Validation, business and not-found errors therefore leave the
        log untouched. A conflict on a later step returns the events already
        appended with ``partial=True``; re-submitting the same command
        completes it.

        A rejected command that links a child under a parent removes whatever
        part of that link an earlier attempt left behind. Once a link is in
        place the parent chain is read again, and a cycle closed by a
        concurrent command is removed the same way and reported as
        ``CircularHierarchy``.

        Raises:
            EventLogCorruptionError: If stored events cannot be replayed. This
                is never returned as a value.
        """
        try:
            command.validate()
        except CommandValidationError as e:
            return ExecutionResult(error=e)

        steps = plan(entity_id, command)
        link = link_of(entity_id, command)
        cache: Dict[str, OrganizationState] = {}
        decisions = []
        try:
            for step_entity_id, step_command in steps:
                decisions.append(self._decide_step(step_entity_id, step_command, cache))
        except EventLogCorruptionError:
            logger.error("Event log corrupt while deciding %s on %s", command.command_type, entity_id)
            raise
        except OrgSourceError as e:
            logger.info("Rejected %s %s on %s: %s", command.command_type, command.command_id, entity_id, e)
            if link is not None and isinstance(e, BusinessRuleViolation):
                return self._roll_back_link(command, link, [], e)
            return ExecutionResult(error=e)

        appended: List[DomainEvent] = []
        for old_state, new_state, events in decisions:
            if not events:
                continue
            try:
                self.event_log.append(old_state.entity_id, old_state.version, events)
            except ConcurrencyConflict as e:
                if appended:
                    logger.warning(
                        "%s %s stopped after a partial append: %s. Re-submit the command to complete it",
                        command.command_type, command.command_id, e)
                else:
                    logger.warning("Conflict executing %s on %s: %s", command.command_type, entity_id, e)
                return ExecutionResult(
                    events=appended, error=e, partial=bool(appended), published=self._publish(appended))
            logger.info("Appended %d events to %s (version %d -> %d)",
                        len(events), old_state.entity_id, old_state.version, new_state.version)
            appended.extend(events)
            self._snapshot(old_state, new_state)

        if link is not None:
            parent_id, child_id = link
            if child_id in self._chain_from(parent_id, {}):
                error = CircularHierarchy(f"{child_id} became an ancestor of {parent_id} while it was linked")
                return self._roll_back_link(command, link, appended, error)

        return ExecutionResult(events=appended, published=self._publish(appended))

    def execute_payload(self, entity_id: str, payload: Dict[str, Any]) -> ExecutionResult:
        """Load a command from a transport payload and execute it."""
        try:
            command = command_from_dict(payload)
        except CommandValidationError as e:
            return ExecutionResult(error=e)
        return self.execute(entity_id, command)
