"""
Factory for the cache backend, created once per process.
"""

import logging
from enum import Enum
from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from loader_app.redis_client import connect_redis

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Creates the configured cache backend and keeps the instance.

    A Redis backend that cannot be reached at start-up is replaced by the
    in-memory cache.
    """

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == CacheBackend.REDIS:
            client = connect_redis()
            if client is not None:
                cls._instance = RedisCache(client)
            else:
                logger.warning("Using in-memory keyword cache instead of Redis")
                cls._instance = InMemoryCache()
        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache()
        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()
        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        logger.info("Keyword cache: %s", type(cls._instance).__name__)
        return cls._instance

    @classmethod
    def clear_instance(cls):
        cls._instance = None
