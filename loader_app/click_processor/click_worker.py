"""
Click worker.

Consumes click events published by the go controller, writes one ClickLog
row per click and bumps ShortURL.clicks. Messages are acknowledged only
after the database commit. A failed batch stays in this consumer's pending
list and is read again by the next run_once.

Usage:
    python -m loader_app.click_processor.click_worker
"""

import asyncio
import logging
import signal
import sys
from collections import Counter
from typing import List

from sqlalchemy import update

from loader_app.config import settings
from loader_app.database.connection import SessionLocal
from loader_app.models.log import ClickLog
from loader_app.models.url import ShortURL
from loader_app.queue.models import ClickEvent
from loader_app.queue.strategies import QueueStrategy

logger = logging.getLogger(__name__)


class ClickWorker:
    def __init__(
        self,
        queue: QueueStrategy,
        db_session_factory=SessionLocal,
        batch_size: int = None,
        block_time: int = 1000,
    ):
        self.queue = queue
        self.db_session_factory = db_session_factory
        self.batch_size = batch_size or settings.queue_batch_size
        self.block_time = block_time
        self.running = False
        self.processed_count = 0

    async def run_once(self) -> int:
        """Process one batch; returns the number of clicks stored"""
        messages = await self.queue.consume(
            settings.queue_name,
            batch_size=self.batch_size,
            block_time=self.block_time,
        )
        if not messages:
            return 0

        self._store_batch(messages)

        message_ids = [m.message_id for m in messages if m.message_id]
        if message_ids:
            await self.queue.ack(settings.queue_name, message_ids)

        self.processed_count += len(messages)
        logger.info("Stored %d clicks (total %d)", len(messages), self.processed_count)
        return len(messages)

    def _store_batch(self, messages: List[ClickEvent]) -> None:
        db = self.db_session_factory()
        try:
            db.add_all([
                ClickLog(
                    click_time=event.timestamp,
                    shorturl=event.keyword,
                    referrer=event.referrer,
                    user_agent=event.user_agent,
                    ip_address=event.ip_address,
                    country_code=event.country_code,
                )
                for event in messages
            ])

            for keyword, count in Counter(m.keyword for m in messages).items():
                db.execute(
                    update(ShortURL)
                    .where(ShortURL.keyword == keyword)
                    .values(clicks=ShortURL.clicks + count)
                )

            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def start(self):
        """Loop until stop() or a termination signal"""
        self.running = True
        logger.info("Click worker started (batch size %d)", self.batch_size)

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        while self.running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Click worker cancelled")
                break
            except Exception:
                # Unacknowledged, so the next run_once reads it again
                logger.exception("Click batch failed")
                await asyncio.sleep(settings.queue_worker_interval)

        logger.info("Click worker stopped")

    def _signal_handler(self, signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        self.stop()

    def stop(self):
        self.running = False


async def main():
    from loader_app.logging_config import configure_logging
    from loader_app.queue.factory import QueueFactory, QueueBackend

    configure_logging(settings.log_level)
    logger.info("Environment: %s, queue backend: %s", settings.environment, settings.queue_backend)

    queue = QueueFactory.create(QueueBackend(settings.queue_backend))
    worker = ClickWorker(queue=queue)

    try:
        await worker.start()
    except Exception:
        logger.exception("Click worker crashed")
        sys.exit(1)


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
