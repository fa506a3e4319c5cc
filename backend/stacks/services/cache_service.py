"""Redis caching service for populated deal views.

Cache failures never fail a request: reads degrade to a miss and writes to
a no-op, with the Redis error logged.
"""

from typing import Optional
import uuid

import structlog
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)


def cache_key_for_deal(deal_id: uuid.UUID) -> str:
    return f"deal:{deal_id}"


class CacheService:
    """Async Redis cache service.

    Provides simple key-value caching with TTL and graceful error handling.
    When constructed with ``enabled=False`` every read is a miss and no
    connection is ever opened.
    """

    def __init__(self, redis_url: str, enabled: bool = True):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            enabled: Whether to talk to Redis at all
        """
        self.redis_url = redis_url
        self.enabled = enabled
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)

        return self._redis

    async def get(self, key: str) -> Optional[str]:
        """Get a value from cache.

        Returns:
            Cached value as string, or None if not found, disabled or error
        """
        if not self.enabled:
            return None
        try:
            redis = await self._get_redis()
            value = await redis.get(key)

            if value:
                self.logger.debug("cache_hit", key=key)
            else:
                self.logger.debug("cache_miss", key=key)

            return value

        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e), exc_info=True)
            return None

    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        """Set a value in cache with TTL.

        Returns:
            True if successful, False when disabled or on error
        """
        if not self.enabled:
            return False
        try:
            redis = await self._get_redis()
            await redis.set(key, value, ex=ttl)
            self.logger.debug("cache_set", key=key, ttl=ttl, value_length=len(value))
            return True

        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e), exc_info=True)
            return False

    async def delete(self, *keys: str) -> int:
        """Delete keys from cache.

        Returns:
            Number of keys deleted, 0 when disabled or on error
        """
        if not self.enabled or not keys:
            return 0
        try:
            redis = await self._get_redis()
            deleted = await redis.delete(*keys)
            self.logger.debug("cache_delete", keys=len(keys), deleted=deleted)
            return deleted

        except RedisError as e:
            self.logger.error("cache_delete_failed", keys=list(keys), error=str(e), exc_info=True)
            return 0

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        if not self.enabled:
            return False
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True

        except Exception as e:
            self.logger.error("redis_health_check_failed", error=str(e), exc_info=True)
            return False

    async def close(self) -> None:
        """Close Redis connection. Called on application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")
