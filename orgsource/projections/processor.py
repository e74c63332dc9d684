"""Queue consumer that feeds a projection builder"""
import logging

from orgsource.messaging.base import BaseServiceProcessor

from .builder import ProjectionBuilder

logger = logging.getLogger(__name__)


class ProjectionEventProcessor(BaseServiceProcessor):
    """Applies event messages from a queue to a ``ProjectionBuilder``."""

    def __init__(self, builder: ProjectionBuilder = None):
        super().__init__()
        self.builder = builder or ProjectionBuilder()

    def process(self, message):
        if self.builder.handle_message(message):
            logger.debug("Applied %s %s", message.get('event_type'), message.get('event_id'))
        else:
            logger.debug("Skipped duplicate event %s", message.get('event_id'))
