"""Execution record storage operations."""

from redis.asyncio import Redis

from pipealert.core.config import get_settings
from pipealert.models.execution import ExecutionRecord
from pipealert.storage.redis_client import RedisKeys, get_redis


class ExecutionStore:
    """One JSON document per pipeline execution, keyed by execution id."""

    def __init__(self, redis: Redis | None = None):
        self._redis = redis
        self._settings = get_settings()

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        """Get the record of an execution.

        Args:
            execution_id: Pipeline execution id

        Returns:
            Stored record, or None when nothing has been recorded yet
        """
        data = await self.redis.get(RedisKeys.execution(execution_id))
        if not data:
            return None
        return ExecutionRecord.model_validate_json(data)

    async def save(self, record: ExecutionRecord) -> None:
        """Overwrite the stored record with the given one.

        Args:
            record: Complete, authoritative execution state
        """
        await self.redis.set(
            RedisKeys.execution(record.execution_id),
            record.model_dump_json(),
            ex=self._settings.execution_ttl_seconds,
        )

    async def claim(self, execution_id: str, ttl: int | None = None) -> bool:
        """Claim the right to deliver the notification for an execution.

        Args:
            execution_id: Pipeline execution id
            ttl: Claim lifetime in seconds

        Returns:
            True if newly claimed, False if another invocation holds the claim
        """
        result = await self.redis.set(
            RedisKeys.notify_claim(execution_id),
            "1",
            nx=True,
            ex=ttl or self._settings.notify_claim_seconds,
        )
        return bool(result)

    async def release(self, execution_id: str) -> None:
        """Give up a delivery claim so a later event can retry.

        Args:
            execution_id: Pipeline execution id
        """
        await self.redis.delete(RedisKeys.notify_claim(execution_id))

    async def seal(self, execution_id: str) -> None:
        """Keep the delivery claim for as long as the record lives.

        A record written by an overlapping invocation may still carry
        ``is_notified=False``; the sealed claim keeps that stale copy from
        triggering a second delivery.

        Args:
            execution_id: Pipeline execution id
        """
        await self.redis.set(
            RedisKeys.notify_claim(execution_id),
            "1",
            ex=self._settings.execution_ttl_seconds,
        )
