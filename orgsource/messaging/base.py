"""
Message queue adapters used to hand appended events to downstream consumers.
"""
from abc import abstractmethod
from collections import defaultdict, deque
from typing import Callable, Dict, List


class MessageAdapter:
    """Abstract class for a connection to a message queue."""

    def __init__(self):
        pass

    @abstractmethod
    def send_message(self, queue_name: str, message: dict):
        """
        Sends a message to the specified queue.

        Args:
            queue_name (str): The name of the queue to send the message to.
            message (dict): The message to send. Event messages are ``DomainEvent.as_dict`` output.
        """

    @abstractmethod
    def consume_messages(self, queue_name: str, callback_function: Callable[[dict], None] = None):
        """
        Consumes messages from the specified queue.

        Args:
            queue_name (str): The name of the queue to consume messages from.
            callback_function (callable): The function to call with each decoded message.
        """

    @abstractmethod
    def __enter__(self):
        """Performs any initialization required for the connection."""

    @abstractmethod
    def __exit__(self, exc_type, exc_value, traceback):
        """Performs any cleanup required for the connection."""


class InMemoryMessageAdapter(MessageAdapter):
    """
    Queues held in process memory.

    ``consume_messages`` drains what is queued and returns, which makes it
    usable for local runs and tests without a broker.
    """

    def __init__(self):
        super().__init__()
        self._queues: Dict[str, deque] = defaultdict(deque)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        pass

    def send_message(self, queue_name: str, message: dict):
        self._queues[queue_name].append(message)

    def pending(self, queue_name: str) -> List[dict]:
        return list(self._queues[queue_name])

    def consume_messages(self, queue_name: str, callback_function: Callable[[dict], None] = None):
        queue = self._queues[queue_name]
        while queue:
            message = queue.popleft()
            if callback_function is not None:
                callback_function(message)


class BaseServiceProcessor:  # pylint: disable=R0903
    """Abstract class for processing messages consumed from a queue."""

    def __init__(self):
        pass

    @abstractmethod
    def process(self, message):
        """
        Processes one decoded message.
        """
