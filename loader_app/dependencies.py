"""
FastAPI dependencies.

This is the "bootstrap the application" step of every request: settings,
database session, cache, click queue and the services built on them are
injected into the routes.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from loader_app.cache.factory import CacheFactory, CacheBackend
from loader_app.cache.strategies import CacheStrategy
from loader_app.config import settings
from loader_app.database.connection import get_db
from loader_app.queue.factory import QueueFactory, QueueBackend
from loader_app.queue.strategies import QueueStrategy
from loader_app.services.keyword_service import KeywordService
from loader_app.services.page_service import PageService
from loader_app.services.stats_service import StatsService


@lru_cache()
def get_cache() -> CacheStrategy:
    """Cache backend from settings, created once"""
    return CacheFactory.create(CacheBackend(settings.cache_backend))


@lru_cache()
def get_queue() -> QueueStrategy:
    """Click queue backend from settings, created once"""
    return QueueFactory.create(QueueBackend(settings.queue_backend))


@lru_cache()
def get_page_service() -> PageService:
    return PageService(settings.pages_dir)


def get_keyword_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache),
    queue: QueueStrategy = Depends(get_queue)
) -> KeywordService:
    return KeywordService(db=db, cache=cache, queue=queue)


def get_stats_service(db: Session = Depends(get_db)) -> StatsService:
    return StatsService(db)
