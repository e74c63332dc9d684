"""
RabbitMQ adapter for publishing and consuming organization events.
"""
import json
import logging
from typing import Callable

import pika

from .base import MessageAdapter

logger = logging.getLogger(__name__)


class RabbitMqConnection(MessageAdapter):
    """
    A connection to a RabbitMQ server.

    Queues are declared durable and messages are published persistent, so
    appended events survive a broker restart until a consumer acknowledges them.
    Consumption is single threaded so messages are handled in publish order.
    """

    def __init__(self, host: str, port: int, username: str, password: str, virtual_host: str = '/'):
        """
        Args:
            host (str): The host of the RabbitMQ server.
            port (int): The port of the RabbitMQ server.
            username (str): The username to use when connecting to the RabbitMQ server.
            password (str): The password to use when connecting to the RabbitMQ server.
            virtual_host (str): The virtual host to use when connecting to the RabbitMQ server.
        """
        super().__init__()
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._virtual_host = virtual_host

        self._connection = None
        self._channel = None
        self._declared_queues = set()

    def __enter__(self):
        self._connection = pika.BlockingConnection(
            pika.ConnectionParameters(host=self._host, port=self._port,
                                      credentials=pika.PlainCredentials(self._username, self._password),
                                      virtual_host=self._virtual_host))
        self._channel = self._connection.channel()
        self._declared_queues = set()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self._connection is not None and self._connection.is_open:
            self._connection.close()
        self._connection = None
        self._channel = None

    def _declare(self, queue_name: str):
        if queue_name not in self._declared_queues:
            self._channel.queue_declare(queue=queue_name, durable=True)
            self._declared_queues.add(queue_name)

    def send_message(self, queue_name: str, message: dict):
        self._declare(queue_name)
        properties = pika.BasicProperties(
            delivery_mode=pika.spec.PERSISTENT_DELIVERY_MODE,
            content_type='application/json',
            message_id=message.get('event_id'),
            type=message.get('event_type'),
        )
        self._channel.basic_publish(
            exchange='', routing_key=queue_name, body=json.dumps(message), properties=properties)

    def consume_messages(self, queue_name: str, callback_function: Callable[[dict], None] = None,
                         prefetch_count: int = 1):
        """
        Consume ``queue_name`` until interrupted.

        A message is acknowledged after the callback returns. A message the
        callback fails on is rejected without requeueing so it does not block
        the queue; the broker's dead-letter policy decides what happens to it.
        """

        def _on_message(ch, method_frame, _header_frame, body):
            delivery_tag = method_frame.delivery_tag
            try:
                message = json.loads(body.decode())
                if callback_function is not None:
                    callback_function(message)
            except Exception:  # pylint: disable=W0718
                logger.exception("Error processing message with delivery tag %s", delivery_tag)
                ch.basic_reject(delivery_tag=delivery_tag, requeue=False)
                return
            ch.basic_ack(delivery_tag=delivery_tag)

        self._declare(queue_name)
        self._channel.basic_qos(prefetch_count=prefetch_count)
        self._channel.basic_consume(queue=queue_name, on_message_callback=_on_message)

        try:
            logger.info('Listening to RabbitMQ queue %s on %s:%s...', queue_name, self._host, self._port)
            self._channel.start_consuming()
        except KeyboardInterrupt:
            logger.info("Exiting gracefully...")
            self._channel.stop_consuming()
