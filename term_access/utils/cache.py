"""
Redis tag invalidation.

Hosts cache rendered content under ``cache:tag:<tag>:<key>``. Invalidating a
tag drops every key stored under it. Without a Redis URL the manager is
disabled and invalidation only logs.
"""

import logging
import time

import redis.asyncio as redis

from term_access.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    PREFIX_TAG = "cache:tag:"
    RETRY_COOLDOWN_SECONDS = 30

    def __init__(self, redis_url: str | None = None):
        self._redis_url = redis_url
        self._redis: redis.Redis | None = None
        self._pool: redis.ConnectionPool | None = None
        self._enabled = redis_url is not None
        self._last_connect_attempt: float = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def connect(self) -> None:
        if self._redis is not None or self._redis_url is None:
            return

        self._last_connect_attempt = time.time()
        try:
            self._pool = redis.ConnectionPool.from_url(self._redis_url, decode_responses=True)
            self._redis = redis.Redis(connection_pool=self._pool)
            await self._redis.ping()
            logger.info("Cache: connected to Redis")
        except Exception as e:
            logger.warning(f"Cache: Redis unavailable ({e}); invalidation disabled")
            self._redis = None
            self._enabled = False

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None

    async def _client(self) -> redis.Redis | None:
        if self._redis_url is None:
            return None
        if not self._enabled and time.time() - self._last_connect_attempt >= self.RETRY_COOLDOWN_SECONDS:
            logger.info("Cache: retrying Redis connection")
            self._enabled = True
        if not self._enabled:
            return None
        if self._redis is None:
            await self.connect()
        return self._redis

    @classmethod
    def tagged_key(cls, tag: str, key: str) -> str:
        return f"{cls.PREFIX_TAG}{tag}:{key}"

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching *pattern*; Redis errors are logged, not raised."""
        client = await self._client()
        if client is None:
            return 0

        try:
            keys = [key async for key in client.scan_iter(match=pattern)]
            if not keys:
                return 0
            deleted = await client.delete(*keys)
            logger.debug(f"Cache: deleted {deleted} keys for {pattern}")
            return deleted
        except Exception as e:
            logger.warning(f"Cache: delete failed for {pattern}: {e}")
            return 0

    async def invalidate(self, tag: str) -> None:
        if not self._enabled and self._redis_url is None:
            logger.debug(f"Cache disabled; skipping invalidation of {tag}")
            return
        await self.delete_pattern(f"{self.PREFIX_TAG}{tag}:*")


cache_manager = CacheManager(settings.redis_url)
