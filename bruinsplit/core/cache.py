"""
Redis cache management.
Provides connection pooling and helper functions for caching operations.
"""
import json
import logging
from typing import Any, Optional
from redis import asyncio as aioredis
from bruinsplit.config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis cache manager with connection pooling. Every call is a no-op without Redis."""

    def __init__(self):
        """Initialize Redis connection pool."""
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if not settings.redis_url:
            logger.info("No Redis URL provided - running without Redis cache")
            self.redis = None
            return

        try:
            self.redis = aioredis.from_url(
                settings.redis_url,
                password=settings.redis_password if settings.redis_password else None,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Could not connect to Redis, running without cache: {e}")
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value or None if not found
        """
        if not self.redis:
            return None

        value = await self.redis.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds
        """
        if not self.redis:
            return False

        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        if ttl:
            return await self.redis.setex(key, ttl, value)
        return await self.redis.set(key, value)

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        if not self.redis:
            return False

        return bool(await self.redis.exists(key))


# Global cache instance
cache = RedisCache()


# Helper functions for common cache patterns
async def cache_profile(user_id: str, profile: dict) -> bool:
    """Cache the authenticated user's profile row."""
    key = f"profile:{user_id}"
    return await cache.set(key, profile, ttl=settings.cache_user_ttl)


async def get_cached_profile(user_id: str) -> Optional[dict]:
    """Get cached profile."""
    key = f"profile:{user_id}"
    return await cache.get(key)

