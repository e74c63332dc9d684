"""data module"""

from .base import EventLog, SnapshotStore
from .memory import InMemoryEventLog, InMemorySnapshotStore
import logging

logger = logging.getLogger(__name__)


# Conditional imports - only import if dependencies are available
try:
    from .postgresql import PostgreSQLEventLog
except ImportError:
    logger.info("PostgreSQLEventLog not loaded - probably, missing dependencies")
    pass
