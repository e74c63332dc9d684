"""Module for messaging"""
import logging

from .base import BaseServiceProcessor, InMemoryMessageAdapter, MessageAdapter
from .publisher import EventPublisher

logger = logging.getLogger(__name__)

try:
    from .rabbitmq import RabbitMqConnection
except ImportError:
    logger.info("RabbitMqConnection not loaded - probably, missing dependencies")
    pass

try:
    from .sqs import SqsConnection
except ImportError:
    logger.info("SqsConnection not loaded - probably, missing dependencies")
    pass
