import json
from typing import Any, Callable

import pika
from pika.exceptions import AMQPConnectionError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from roleplay_eval import config
from roleplay_eval.logging_config import get_logger

logger = get_logger(__name__)


class RabbitMQClient:
    def __init__(
        self,
        host: str = config.RABBITMQ_HOST,
        port: int = config.RABBITMQ_PORT,
        username: str = config.RABBITMQ_USER,
        password: str = config.RABBITMQ_PASSWORD,
        heartbeat: int = 600,
        blocked_connection_timeout: int = 300,
    ):
        self.host = host
        self.port = port
        self.credentials = pika.PlainCredentials(username, password)

        self.connection_params = pika.ConnectionParameters(
            host=self.host,
            port=self.port,
            credentials=self.credentials,
            heartbeat=heartbeat,
            blocked_connection_timeout=blocked_connection_timeout,
        )

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type(AMQPConnectionError),
        reraise=True,
    )
    def _connect(self) -> pika.BlockingConnection:
        return pika.BlockingConnection(self.connection_params)

    def publish(
        self,
        queue_name: str,
        message: dict,
        persistent: bool = True,
    ) -> None:
        """
        Publish a JSON-serializable message to a durable queue.
        """
        connection = self._connect()
        try:
            channel = connection.channel()
            channel.queue_declare(queue=queue_name, durable=True)

            properties = pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2 if persistent else 1,  # 2 = persistent
            )

            channel.basic_publish(
                exchange="",
                routing_key=queue_name,
                body=json.dumps(message),
                properties=properties,
            )
        finally:
            connection.close()

    def consume(
        self,
        queue_name: str,
        callback: Callable[[dict], Any],
        prefetch_count: int = 1,
    ) -> None:
        """
        Start consuming messages from a queue.
        The callback must accept a single dict argument. A message is acked
        once the callback returns; an exception requeues it.
        """

        def _on_message(channel, method, properties, body):
            try:
                message = json.loads(body)
            except json.JSONDecodeError as e:
                # Redelivery cannot fix an unparseable body
                logger.error("message_not_json", queue=queue_name, error=str(e))
                channel.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
                return

            try:
                callback(message)
                channel.basic_ack(delivery_tag=method.delivery_tag)
            except Exception as e:
                logger.exception("message_processing_failed", queue=queue_name, error=str(e))
                channel.basic_nack(delivery_tag=method.delivery_tag, requeue=True)

        connection = self._connect()
        channel = connection.channel()

        channel.queue_declare(queue=queue_name, durable=True)
        channel.basic_qos(prefetch_count=prefetch_count)

        channel.basic_consume(
            queue=queue_name,
            on_message_callback=_on_message,
        )

        logger.info("consuming_queue", queue=queue_name)
        channel.start_consuming()
