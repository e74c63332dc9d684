"""AWS SQS adapter for publishing and consuming organization events."""
import json
import logging
import uuid

import boto3
from dotenv import dotenv_values

from .base import MessageAdapter

logger = logging.getLogger(__name__)


class SqsConnection(MessageAdapter):
    """
    A connection to AWS SQS.

    For FIFO queues (names ending in ``.fifo``) events are grouped by
    organization and deduplicated by event id, so each organization's events
    arrive in version order.
    """

    def __init__(self, aws_access_key_id: str = None,
                 aws_access_key_secret: str = None,
                 region_name: str = None,
                 consume_config_file_path: str = None):
        super().__init__()
        self._aws_access_key_id = aws_access_key_id
        self._aws_access_key_secret = aws_access_key_secret
        self._region_name = region_name
        self._consume_config_file_path = consume_config_file_path
        self._sqs = boto3.resource('sqs',
                                   aws_access_key_id=self._aws_access_key_id,
                                   aws_secret_access_key=self._aws_access_key_secret,
                                   region_name=self._region_name)
        self._queue_map = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        pass

    def _read_consume_config(self):
        if self._consume_config_file_path is None:
            return {}
        return dotenv_values(self._consume_config_file_path)

    def _get_queue(self, queue_name: str):
        queue = self._queue_map.get(queue_name)
        if queue is None:
            attributes = {}
            if queue_name.endswith('.fifo'):
                attributes = {'FifoQueue': 'true'}
            queue = self._sqs.create_queue(QueueName=queue_name, Attributes=attributes)
            self._queue_map[queue_name] = queue
        return queue

    def send_message(self, queue_name: str, message: dict):
        queue = self._get_queue(queue_name)
        kwargs = {'MessageBody': json.dumps(message)}
        if message.get('event_type'):
            kwargs['MessageAttributes'] = {
                'event_type': {'DataType': 'String', 'StringValue': message['event_type']},
            }
        if queue_name.endswith('.fifo'):
            kwargs['MessageGroupId'] = message.get('entity_id') or 'default'
            kwargs['MessageDeduplicationId'] = message.get('event_id') or str(uuid.uuid4())
        queue.send_message(**kwargs)

    def consume_messages(self, queue_name: str, callback_function: callable = None):
        """
        Poll ``queue_name`` and pass each decoded message to ``callback_function``.

        Messages are deleted after the callback returns. A failing message is
        left on the queue for redelivery. Set ``EXIT_WHEN_FINISHED=1`` in the
        consume config file to stop once the queue is empty.
        """
        logger.info("Connecting to SQS queue: %s...", queue_name)
        queue = self._get_queue(queue_name)

        while True:
            responses = queue.receive_messages(
                AttributeNames=['All'],
                MessageAttributeNames=['All'],
                MaxNumberOfMessages=10,
                WaitTimeSeconds=20
            )
            if not responses:
                logger.info("No messages left in queue %s.", queue_name)
                if self._read_consume_config().get('EXIT_WHEN_FINISHED') == '1':
                    logger.info("EXIT_WHEN_FINISHED=1 and no messages left in queue. Exiting...")
                    return
                continue

            for response in responses:
                try:
                    body = json.loads(response.body)
                    if callback_function is not None:
                        callback_function(body)
                except Exception:  # pylint: disable=W0718
                    logger.exception("Error processing message %s", response.message_id)
                    continue
                response.delete()
