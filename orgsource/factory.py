"""
Builds event logs, message adapters and repositories from an ``EngineConfig``.
"""
from typing import Callable, Dict, Optional

from .config import EngineConfig, EventLogBackend, MessageBroker
from .data import InMemoryEventLog, InMemorySnapshotStore
from .data.base import EventLog
from .messaging import EventPublisher
from .messaging.base import MessageAdapter
from .repositories import OrganizationRepository


def _create_postgres_log(config: EngineConfig) -> EventLog:
    from .data.postgresql import PostgreSQLEventLog
    return PostgreSQLEventLog(**config.postgres_settings)


def _create_rabbitmq_adapter(config: EngineConfig) -> MessageAdapter:
    from .messaging.rabbitmq import RabbitMqConnection
    return RabbitMqConnection(**config.rabbitmq_settings)


def _create_sqs_adapter(config: EngineConfig) -> MessageAdapter:
    from .messaging.sqs import SqsConnection
    return SqsConnection(**config.sqs_settings)


class EventLogFactory:
    def __init__(self):
        self._builders: Dict[EventLogBackend, Callable[[EngineConfig], EventLog]] = {}

    def register_backend(self, key: EventLogBackend, builder: Callable[[EngineConfig], EventLog]):
        self._builders[key] = builder

    def get(self, config: EngineConfig) -> EventLog:
        key = config.event_log_backend
        builder = self._builders.get(key)
        if builder is None:
            raise ValueError(key)
        return builder(config)


class MessageAdapterFactory:
    def __init__(self):
        self._builders: Dict[MessageBroker, Callable[[EngineConfig], MessageAdapter]] = {}

    def register_broker(self, key: MessageBroker, builder: Callable[[EngineConfig], MessageAdapter]):
        self._builders[key] = builder

    def get(self, config: EngineConfig) -> Optional[MessageAdapter]:
        """The configured adapter, or None when no broker is configured."""
        key = config.message_broker
        if key == MessageBroker.none:
            return None
        builder = self._builders.get(key)
        if builder is None:
            raise ValueError(key)
        return builder(config)


event_log_factory = EventLogFactory()
event_log_factory.register_backend(key=EventLogBackend.memory, builder=lambda config: InMemoryEventLog())
event_log_factory.register_backend(key=EventLogBackend.postgres, builder=_create_postgres_log)

message_adapter_factory = MessageAdapterFactory()
message_adapter_factory.register_broker(key=MessageBroker.rabbitmq, builder=_create_rabbitmq_adapter)
message_adapter_factory.register_broker(key=MessageBroker.sqs, builder=_create_sqs_adapter)


def create_repository(config: EngineConfig = None) -> OrganizationRepository:
    """
    Wire a repository from ``config`` (read from the environment when omitted).

    Raises:
        ConfigError: If the configuration is invalid.
    """
    config = config or EngineConfig()
    config.validate_env_vars()
    adapter = message_adapter_factory.get(config)
    publisher = EventPublisher(adapter, config.event_queue) if adapter is not None else None
    return OrganizationRepository(
        event_log=event_log_factory.get(config),
        snapshot_store=InMemorySnapshotStore() if config.snapshot_frequency > 0 else None,
        snapshot_frequency=config.snapshot_frequency,
        publisher=publisher,
    )
