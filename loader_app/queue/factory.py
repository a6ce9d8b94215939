"""
Factory for the click queue backend, created once per process.
"""

import logging
from enum import Enum
from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from loader_app.config import settings
from loader_app.redis_client import connect_redis

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Creates the configured queue backend and keeps the instance.

    Without Redis, clicks go to an in-process queue that only a worker
    running in the same process can drain.
    """

    _instance: QueueStrategy = None

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS_STREAMS:
            client = connect_redis()
            if client is not None:
                cls._instance = RedisStreamQueue(client, settings.queue_consumer_group)
            else:
                logger.warning("Using in-memory click queue instead of Redis Streams")
                cls._instance = InMemoryQueue()
        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueue()
        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        logger.info("Click queue: %s", type(cls._instance).__name__)
        return cls._instance

    @classmethod
    def clear_instance(cls):
        cls._instance = None
