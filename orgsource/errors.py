"""
Error taxonomy for orgsource.

Business rule violations, validation errors, conflicts and missing entities are
returned as values by the repository. ``EventLogCorruptionError`` is the only
error that is always raised: it means the stored history can no longer be
trusted.
"""


class OrgSourceError(Exception):
    """Base class for every error raised by orgsource."""

    retryable = False

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)

    def as_dict(self):
        return {'error': type(self).__name__, 'message': self.message, 'retryable': self.retryable}


class CommandValidationError(OrgSourceError):
    """
    Raised when a command payload is malformed.

    Attributes:
        errors (list): A list of error messages returned from validation methods.
    """

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        elif not isinstance(errors, list):
            raise ValueError("Errors should be a string or a list of strings")
        self.errors = errors
        super().__init__(self.format_errors())

    def format_errors(self):
        return "\n".join(self.errors)

    def __str__(self):
        return self.format_errors()

    def as_dict(self):
        result = super().as_dict()
        result['errors'] = list(self.errors)
        return result


class EntityNotFound(OrgSourceError):
    """Entity has no events."""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Organization {entity_id} not found")


class ConcurrencyConflict(OrgSourceError):
    """The event stream moved past the expected version."""

    retryable = True

    def __init__(self, entity_id: str, expected_version: int, actual_version: int):
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Organization {entity_id} is at version {actual_version}, expected {expected_version}")


class EventLogCorruptionError(OrgSourceError):
    """The stored event history cannot be replayed."""


class BusinessRuleViolation(OrgSourceError):
    """A command was rejected by a business rule."""


class InvalidStatusTransition(BusinessRuleViolation):
    """Status transition is not allowed."""

    def __init__(self, current_status, requested_status, detail: str = None):
        self.current_status = current_status
        self.requested_status = requested_status
        message = f"Cannot transition from {current_status} to {requested_status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CircularHierarchy(BusinessRuleViolation):
    """Change would create a cycle in the organization hierarchy."""


class CircularReporting(BusinessRuleViolation):
    """Change would create a cycle in the reporting structure."""


class DissolutionBlockedByActiveChildren(BusinessRuleViolation):
    """Organization still has child organizations that are not dissolved or merged."""

    def __init__(self, entity_id: str, active_child_ids):
        self.entity_id = entity_id
        self.active_child_ids = sorted(active_child_ids)
        super().__init__(
            f"Organization {entity_id} has active children: {', '.join(self.active_child_ids)}")


class MemberRemovalBlockedByDependents(BusinessRuleViolation):
    """Other members still report to the member being removed."""

    def __init__(self, person_id: str, dependent_ids):
        self.person_id = person_id
        self.dependent_ids = sorted(dependent_ids)
        super().__init__(
            f"Members {', '.join(self.dependent_ids)} still report to {person_id}")


class OperationNotPermitted(BusinessRuleViolation):
    """Operation is not permitted in the organization's current status."""


class EntityAlreadyExists(BusinessRuleViolation):
    """Organization already exists."""


class DuplicateMember(BusinessRuleViolation):
    """Person is already a member."""


class MemberNotFound(BusinessRuleViolation):
    """Person is not a member."""


class DuplicateLocation(BusinessRuleViolation):
    """Location is already associated."""


class LocationNotFound(BusinessRuleViolation):
    """Location is not associated."""


class InvalidHierarchy(BusinessRuleViolation):
    """Organization already belongs to a different parent."""


class InvalidMerge(BusinessRuleViolation):
    """Organizations cannot be merged."""


class InvalidAcquisition(BusinessRuleViolation):
    """Organization cannot be acquired."""


class ConfigError(OrgSourceError):
    """Configuration is invalid."""


class InvariantViolation(OrgSourceError):
    """Decided events would leave the organization in an inconsistent state."""

    def __init__(self, entity_id: str, problems):
        self.entity_id = entity_id
        self.problems = list(problems)
        super().__init__(f"Organization {entity_id}: {'; '.join(self.problems)}")
