"""RabbitMQ message consumer."""

from typing import Any, Callable, Coroutine

import aio_pika
from aio_pika import IncomingMessage
from aio_pika.abc import AbstractRobustConnection
from botocore.exceptions import BotoCoreError, ClientError
from redis.exceptions import RedisError

from pipealert.core.config import get_settings
from pipealert.core.errors import MalformedEventError
from pipealert.core.logging import get_logger

logger = get_logger(__name__)

# Type alias for payload handler
PayloadHandler = Callable[[bytes], Coroutine[Any, Any, Any]]


class RabbitMQConsumer:
    """Consumes SNS deliveries or bare notification bodies from a queue.

    Messages are acknowledged once handled. A malformed message is logged and
    dropped. Transient failures (Redis, AWS) reject the message for redelivery.
    """

    def __init__(self, handler: PayloadHandler):
        """Initialize consumer.

        Args:
            handler: Async function handling the raw message body
        """
        self._settings = get_settings()
        self._handler = handler
        self._connection: AbstractRobustConnection | None = None
        self._should_stop = False

    async def connect(self) -> None:
        """Connect to RabbitMQ."""
        self._connection = await aio_pika.connect_robust(
            self._settings.rabbitmq_url,
            reconnect_interval=5,
        )
        logger.info("Connected to RabbitMQ")

    async def disconnect(self) -> None:
        """Disconnect from RabbitMQ."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Disconnected from RabbitMQ")

    async def start_consuming(self) -> None:
        """Start consuming messages from queue."""
        if not self._connection:
            await self.connect()

        channel = await self._connection.channel()
        # Events of one execution are folded sequentially.
        await channel.set_qos(prefetch_count=1)

        queue = await channel.declare_queue(
            self._settings.rabbitmq_queue,
            durable=True,
        )

        logger.info("Starting message consumption", queue=self._settings.rabbitmq_queue)

        async with queue.iterator() as queue_iter:
            async for message in queue_iter:
                if self._should_stop:
                    break
                await self.process_message(message)

    async def process_message(self, message: IncomingMessage) -> None:
        """Process a single message.

        Args:
            message: Incoming RabbitMQ message
        """
        try:
            await self._handler(message.body)
        except MalformedEventError as e:
            logger.warning(
                "Dropping malformed message",
                message_id=message.message_id,
                execution_id=e.execution_id,
                error=str(e),
            )
            await message.reject(requeue=False)
            return
        except (RedisError, ClientError, BotoCoreError) as e:
            logger.error(
                "Transient error processing message",
                message_id=message.message_id,
                error=str(e),
                redelivered=message.redelivered,
            )
            # Requeue once; a second failure drops the message.
            await message.reject(requeue=not message.redelivered)
            return
        except Exception as e:
            logger.error("Error processing message", error=str(e), exc_info=True)
            await message.reject(requeue=False)
            return

        await message.ack()

    def stop(self) -> None:
        """Signal consumer to stop."""
        self._should_stop = True
        logger.info("Consumer stop requested")
