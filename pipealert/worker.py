"""Worker process entry point for queue consumption."""

import asyncio
import signal

from pipealert.core.config import get_settings
from pipealert.core.logging import get_logger, setup_logging
from pipealert.messaging.consumer import RabbitMQConsumer
from pipealert.messaging.handler import (
    close_message_handler,
    get_message_handler,
    handle_payload,
)
from pipealert.storage.redis_client import close_redis_pool, init_redis_pool

logger = get_logger(__name__)


class WorkerManager:
    """Runs the queue consumer and owns its resources."""

    def __init__(self):
        """Initialize worker manager."""
        self._settings = get_settings()
        self._consumer: RabbitMQConsumer | None = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start consuming."""
        setup_logging()
        logger.info("Starting worker", version=self._settings.app_version)

        # Initialize Redis
        await init_redis_pool()

        # Load routes before the first message
        await get_message_handler().reload_routes()

        self._consumer = RabbitMQConsumer(handle_payload)

        try:
            await self._run_consumer()
        finally:
            await self._cleanup()

    async def _run_consumer(self) -> None:
        """Run message consumer."""
        if self._consumer:
            try:
                await self._consumer.start_consuming()
            except asyncio.CancelledError:
                logger.info("Consumer cancelled")
            except Exception as e:
                logger.error("Consumer error", error=str(e), exc_info=True)

    async def stop(self) -> None:
        """Signal the consumer to stop."""
        logger.info("Stopping worker")
        if self._consumer:
            self._consumer.stop()
        self._shutdown_event.set()

    async def _cleanup(self) -> None:
        """Clean up resources."""
        logger.info("Cleaning up resources")
        if self._consumer:
            await self._consumer.disconnect()
        await close_message_handler()
        await close_redis_pool()
        logger.info("Cleanup complete")


async def main() -> None:
    """Main entry point for worker process."""
    manager = WorkerManager()

    # Setup signal handlers
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(manager.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await manager.start()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
