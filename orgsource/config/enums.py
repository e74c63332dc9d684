"""Backend selection enums"""
from enum import Enum


class EventLogBackend(str, Enum):
    """Event log backend enum"""
    memory = 'memory'
    postgres = 'postgres'

    def __str__(self):
        return str(self.value)


class MessageBroker(str, Enum):
    """Message broker enum"""
    none = 'none'
    rabbitmq = 'rabbitmq'
    sqs = 'sqs'

    def __str__(self):
        return str(self.value)
