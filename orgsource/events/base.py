"""
Base class and registry for domain events
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Type

from orgsource.errors import EventLogCorruptionError
from orgsource.models.payload import PayloadModel

logger = logging.getLogger(__name__)

EVENT_TYPES: Dict[str, Type['DomainEvent']] = {}


def register_event(cls):
    """Class decorator that makes an event type loadable by ``event_from_dict``."""
    EVENT_TYPES[cls.__name__] = cls
    return cls


@dataclass(frozen=True, kw_only=True)
class DomainEvent(PayloadModel):
    """
    An immutable fact recorded against one organization.

    ``version`` is the aggregate version after this event is applied.
    ``causation_id`` is the id of the command that produced the event.
    """

    tag_field: ClassVar[str] = 'event_type'

    event_id: str
    entity_id: str
    version: int
    occurred_at: datetime
    causation_id: Optional[str] = None

    @property
    def event_type(self) -> str:
        return type(self).__name__


def event_from_dict(data: Dict[str, Any]) -> DomainEvent:
    """
    Load a DomainEvent from its dict form.

    Raises:
        EventLogCorruptionError: If the event type is unknown or the payload does not load.
    """
    event_type = data.get('event_type')
    event_class = EVENT_TYPES.get(event_type)
    if event_class is None:
        logger.error("Unknown event type %r for entity %s", event_type, data.get('entity_id'))
        raise EventLogCorruptionError(f"Unknown event type: {event_type}")
    try:
        return event_class.from_dict(data)
    except (TypeError, ValueError, KeyError) as e:
        logger.error("Could not load %s event %s: %s", event_type, data.get('event_id'), e)
        raise EventLogCorruptionError(f"Malformed {event_type} event: {e}") from e
