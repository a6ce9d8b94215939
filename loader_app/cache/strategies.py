"""
Cache strategies for keyword -> long URL lookups.
Allows switching between Redis, in-memory and no caching at all.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Interface shared by all cache backends.

    Methods are async because the Redis backend does network I/O; the
    dispatcher awaits them the same way whatever the backend.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value or None on a miss"""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if stored
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> bool:
        pass


class RedisCache(CacheStrategy):
    """
    Redis-backed cache, shared by every worker process behind the web server.

    Redis errors are logged and reported as misses so an outage only makes
    redirects slower.
    """

    def __init__(self, redis_client):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode("utf-8") if value else None
        except Exception as e:
            logger.warning("Redis get failed for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set failed for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete failed for %s: %s", key, e)
            return False

    async def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except Exception as e:
            logger.warning("Redis exists failed for %s: %s", key, e)
            return False

    async def clear(self) -> bool:
        """Flush the whole Redis database"""
        try:
            self.redis.flushdb()
            return True
        except Exception as e:
            logger.warning("Redis flush failed: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    Per-process dict cache for development and tests.

    TTLs are ignored.
    """

    def __init__(self):
        self._cache: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> bool:
        self._cache.clear()
        return True


class NullCache(CacheStrategy):
    """Cache that stores nothing; every lookup goes to the database"""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def exists(self, key: str) -> bool:
        return False

    async def clear(self) -> bool:
        return True
