"""
Base class and registry for commands
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Type
from uuid import uuid4

from orgsource.errors import CommandValidationError
from orgsource.models.payload import PayloadModel

COMMAND_TYPES: Dict[str, Type['Command']] = {}


def default_datetime():
    return datetime.now(timezone.utc)


def get_uuid_hex():
    return uuid4().hex


def register_command(cls):
    """Class decorator that makes a command type loadable by ``command_from_dict``."""
    COMMAND_TYPES[cls.__name__] = cls
    return cls


@dataclass(kw_only=True)
class Command(PayloadModel):
    """
    A request to change one organization.

    ``command_id`` and ``issued_at`` feed event ids and timestamps, so a command
    re-submitted with the same ``command_id`` produces the same events.
    """

    tag_field: ClassVar[str] = 'command_type'

    # Facts about other aggregates the repository must gather before deciding.
    requires_ancestry: ClassVar[bool] = False
    requires_child_statuses: ClassVar[bool] = False
    # Field naming the organization a step attaches to; its parent chain is gathered.
    parent_field: ClassVar[Optional[str]] = None

    command_id: str = field(default_factory=get_uuid_hex)
    issued_at: datetime = field(default_factory=default_datetime)
    issued_by: Optional[str] = None

    @property
    def command_type(self) -> str:
        return type(self).__name__

    def validate(self):
        """
        Run every `validate_<field_name>` method defined on the command and
        raise `CommandValidationError` if any of them returns a message.
        """
        errors = []
        for name in self.fields():
            validator = getattr(self, f"validate_{name}", None)
            if callable(validator):
                error = validator()
                if error:
                    errors.append(error)
        if errors:
            raise CommandValidationError(errors)

    def validate_command_id(self):
        if not self.command_id:
            return "command_id is required"

    def validate_issued_at(self):
        if not isinstance(self.issued_at, datetime):
            return "issued_at must be a datetime"


def require_text(value, name):
    if not isinstance(value, str) or not value.strip():
        return f"{name} must be a non-empty string"


def optional_text(value, name):
    if value is not None:
        return require_text(value, name)


def command_from_dict(data: Dict[str, Any]) -> Command:
    """
    Load and validate a command from a transport payload.

    Raises:
        CommandValidationError: If the command type is unknown or the payload is malformed.
    """
    if not isinstance(data, dict):
        raise CommandValidationError("Command payload must be an object")
    command_type = data.get('command_type')
    command_class = COMMAND_TYPES.get(command_type)
    if command_class is None:
        raise CommandValidationError(f"Unknown command type: {command_type}")
    try:
        command = command_class.from_dict(data)
    except (AttributeError, TypeError, ValueError, KeyError) as e:
        raise CommandValidationError(f"Malformed {command_type} command: {e}") from e
    command.validate()
    return command
