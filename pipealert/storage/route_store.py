"""Routing configuration storage."""

from pathlib import Path

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from pipealert.core.config import get_settings
from pipealert.core.logging import get_logger
from pipealert.models.route import RouteConfig, RouteRule
from pipealert.storage.redis_client import get_redis

logger = get_logger(__name__)


class RouteStore:
    """Loads and saves the ordered chat routing rules.

    A local JSON file (``ROUTES_CONFIG_FILE``) takes precedence; otherwise the
    configuration is read from a Redis key. A configuration that cannot be
    loaded leaves the rule list empty so every notification goes to the
    fallback channel.
    """

    def __init__(self, redis: Redis | None = None, config_file: str | None = None):
        self._redis = redis
        self._settings = get_settings()
        self._config_file = (
            config_file if config_file is not None else self._settings.routes_config_file
        )
        self._config = RouteConfig()

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    @property
    def config_file(self) -> str:
        """Local routing file that takes precedence over Redis, empty if unset."""
        return self._config_file

    @property
    def rules(self) -> list[RouteRule]:
        return self._config.rules

    async def load(self) -> list[RouteRule]:
        """Load routing rules from the configured source.

        Returns:
            Ordered routing rules
        """
        if self._config_file:
            try:
                logger.info("Loading routes from file", path=self._config_file)
                self.load_from_file(self._config_file)
                return self.rules
            except (OSError, ValidationError) as e:
                logger.warning(
                    "Failed to load routes from file, falling back to Redis",
                    path=self._config_file,
                    error=str(e),
                )

        try:
            data = await self.redis.get(self._settings.routes_redis_key)
            if data:
                self._config = RouteConfig.model_validate_json(data)
        except (RedisError, ValidationError) as e:
            logger.warning("Failed to load routes from Redis, using empty routes", error=str(e))
            self._config = RouteConfig()

        return self.rules

    def load_from_file(self, path: str) -> None:
        """Load routing rules from a local JSON file.

        Args:
            path: Path to a ``{"slack": {"routes": [...]}}`` document

        Raises:
            OSError: If the file cannot be read
            ValidationError: If the document is not a routing configuration
        """
        self._config = RouteConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))

    async def save(self, rules: list[RouteRule] | None = None) -> None:
        """Persist routing rules to Redis.

        Args:
            rules: Replacement rules; the loaded rules are saved when omitted
        """
        if rules is not None:
            self._config = RouteConfig.model_validate({"slack": {"routes": rules}})
        await self.redis.set(self._settings.routes_redis_key, self._config.model_dump_json())
