"""
Hand-off of appended events to a message queue
"""
import logging
from typing import Sequence

from orgsource.events import DomainEvent

from .base import MessageAdapter

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Publishes appended events, one message per event, in append order.

    Delivery is at least once: a batch that fails halfway is reported as
    unpublished and may be sent again, so consumers deduplicate by ``event_id``.
    """

    def __init__(self, message_adapter: MessageAdapter, queue_name: str = 'organization-events'):
        self.message_adapter = message_adapter
        self.queue_name = queue_name

    def publish(self, events: Sequence[DomainEvent]) -> bool:
        """
        Send ``events`` to the queue.

        Returns False if the adapter failed. The failure is logged and never
        raised, since the events are already durable in the event log.
        """
        if not events:
            return True
        try:
            with self.message_adapter:
                for event in events:
                    self.message_adapter.send_message(
                        self.queue_name, event.as_dict(convert_datetime_to_iso_string=True))
        except Exception:  # pylint: disable=W0718
            logger.exception("Failed to publish %d events to %s", len(events), self.queue_name)
            return False
        logger.debug("Published %d events to %s", len(events), self.queue_name)
        return True
