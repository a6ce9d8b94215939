"""
Click queue strategies.
Allows switching between Redis Streams and an in-process deque.
"""

import json
import logging
import socket
from abc import ABC, abstractmethod
from collections import deque
from typing import Dict, List

from .models import ClickEvent

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Interface shared by click queue backends.

    Publishing never raises: a click that cannot be queued is logged and
    dropped, the redirect still happens.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Read up to batch_size messages.

        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of messages to retrieve
            block_time: Time to wait for messages (milliseconds)
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Mark messages as processed"""
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        pass


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams backend.

    XADD publishes, XREADGROUP reads for the consumer group and XACK
    removes a message from the pending list once the worker has committed
    it. The consumer name is stable per host and consume reads this
    consumer's pending list before new messages, so a batch that failed
    or was interrupted by a restart is read again.
    """

    def __init__(self, redis_client, consumer_group: str = "click_workers", consumer_name: str = None):
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = consumer_name or f"worker-{socket.gethostname()}"
        self._initialized_streams = set()

    def _ensure_stream_exists(self, queue_name: str):
        if queue_name in self._initialized_streams:
            return

        try:
            self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id="0",
                mkstream=True
            )
            logger.info("Created Redis stream %s", queue_name)
        except Exception as e:
            # BUSYGROUP: the group already exists
            if "BUSYGROUP" not in str(e):
                logger.warning("Stream creation for %s failed: %s", queue_name, e)

        self._initialized_streams.add(queue_name)

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        try:
            self._ensure_stream_exists(queue_name)
            self.redis.xadd(queue_name, {"data": message.model_dump_json()})
            return True
        except Exception as e:
            logger.error("Could not publish click for %s: %s", message.keyword, e)
            return False

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        try:
            self._ensure_stream_exists(queue_name)

            # '0' reads messages delivered to this consumer but never acknowledged
            messages = self._read_group(queue_name, "0", batch_size)
            if not any(entries for _stream, entries in messages or []):
                # '>' means messages never delivered to another consumer
                messages = self._read_group(queue_name, ">", batch_size, block_time)
        except Exception as e:
            logger.error("Redis consume from %s failed: %s", queue_name, e)
            return []

        events = []
        unreadable = []
        for _stream, stream_messages in messages or []:
            for message_id, message_data in stream_messages:
                try:
                    data = json.loads(message_data[b"data"].decode("utf-8"))
                    event = ClickEvent(**data)
                    event.message_id = message_id.decode("utf-8")
                    events.append(event)
                except Exception as e:
                    logger.warning("Dropping unreadable message %s: %s", message_id, e)
                    unreadable.append(message_id.decode("utf-8"))

        if unreadable:
            await self.ack(queue_name, unreadable)
        return events

    def _read_group(self, queue_name: str, stream_id: str, batch_size: int, block_time: int = None):
        return self.redis.xreadgroup(
            groupname=self.consumer_group,
            consumername=self.consumer_name,
            streams={queue_name: stream_id},
            count=batch_size,
            block=block_time
        )

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        if not message_ids:
            return True
        try:
            self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True
        except Exception as e:
            logger.error("Redis ack on %s failed: %s", queue_name, e)
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        try:
            info = self.redis.xinfo_stream(queue_name)
            return info["length"]
        except Exception:
            return 0


class InMemoryQueue(QueueStrategy):
    """
    Deque-backed queue for development and tests.

    Messages are removed on consume, so ack is a no-op and the queue only
    works when the web app and the worker share a process.
    """

    def __init__(self):
        self._queues: Dict[str, deque] = {}

    def _get_queue(self, queue_name: str) -> deque:
        return self._queues.setdefault(queue_name, deque())

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        self._get_queue(queue_name).append(message)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        queue = self._get_queue(queue_name)
        return [queue.popleft() for _ in range(min(batch_size, len(queue)))]

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return len(self._get_queue(queue_name))
