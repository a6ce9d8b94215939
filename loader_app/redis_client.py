"""
Shared Redis connection for the cache and the click queue.
"""

import logging
from typing import Optional

import redis

from loader_app.config import settings

logger = logging.getLogger(__name__)


def connect_redis(url: Optional[str] = None, timeout: float = 2) -> Optional[redis.Redis]:
    """
    Connect and ping. Returns None when Redis is unreachable so callers can
    fall back to an in-process backend.
    """
    url = url or settings.redis_url
    try:
        client = redis.from_url(
            url,
            decode_responses=False,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )
        client.ping()
    except redis.RedisError as e:
        logger.warning("Redis at %s unavailable: %s", url, e)
        return None
    return client
