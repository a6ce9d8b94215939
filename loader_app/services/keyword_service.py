import logging
import re
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from loader_app.cache.strategies import CacheStrategy
from loader_app.config import settings
from loader_app.exceptions import DuplicateURLError, InvalidURLError, KeywordError, KeywordGenerationError
from loader_app.models.url import ShortURL
from loader_app.queue.models import ClickEvent
from loader_app.queue.strategies import QueueStrategy
from loader_app.routing.protocol import sanitize_url_safe
from loader_app.services.keyword_factory import KeywordFactory

logger = logging.getLogger(__name__)

KEYWORD_MAX_LENGTH = 100
# Generated keywords retried when another request inserted them first
INSERT_ATTEMPTS = 5
# Characters allowed in a keyword read from a request path
KEYWORD_UNSAFE = re.compile(r"[^a-zA-Z0-9$\-_.+!*'(),{}|\\^~\[\]`<>#%\";/?:@&=]")

LINK_FILTERS = {
    "top": ShortURL.clicks.desc(),
    "bottom": ShortURL.clicks.asc(),
    "last": ShortURL.timestamp.desc(),
    "rand": func.random(),
}


def cache_key(keyword: str) -> str:
    return f"keyword:{keyword}"


class KeywordService:
    """
    Keyword store used by the dispatcher, the go controller and the API.

    Cache and queue strategies are injected so tests can swap them for
    in-memory versions.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        queue: Optional[QueueStrategy] = None
    ):
        self.db = db
        self.cache = cache
        self.queue = queue
        self.keyword_strategy = KeywordFactory.create_strategy()

    # Keyword rules

    def sanitize_keyword(self, keyword: Optional[str], restrict_to_charset: bool = False) -> str:
        """
        Clean a keyword.

        With restrict_to_charset only characters of the short URL charset
        survive (used for custom keywords); otherwise URL-unsafe characters
        are removed (used for keywords read from a request).
        """
        if not keyword:
            return ""
        if restrict_to_charset:
            charset = settings.shorturl_charset
            return "".join(c for c in keyword if c in charset)[:KEYWORD_MAX_LENGTH]
        return KEYWORD_UNSAFE.sub("", keyword.strip())[:KEYWORD_MAX_LENGTH]

    def keyword_is_reserved(self, keyword: str) -> bool:
        return keyword.lower() in {k.lower() for k in settings.reserved_keywords}

    def keyword_is_taken(self, keyword: Optional[str]) -> bool:
        if not keyword:
            return False
        return self.db.query(ShortURL.keyword).filter(ShortURL.keyword == keyword).first() is not None

    def keyword_is_free(self, keyword: str) -> bool:
        return not self.keyword_is_reserved(keyword) and not self.keyword_is_taken(keyword)

    # Lookups

    def get_link(self, keyword: str) -> Optional[ShortURL]:
        return self.db.query(ShortURL).filter(ShortURL.keyword == keyword).first()

    def get_keywords_for_url(self, url: str) -> List[str]:
        rows = self.db.query(ShortURL.keyword).filter(ShortURL.url == url).order_by(ShortURL.timestamp).all()
        return [row.keyword for row in rows]

    async def get_keyword_longurl(self, keyword: str) -> Optional[str]:
        """
        Long URL for a keyword, cache first then database.

        A database hit populates the cache for the next request.
        """
        if self.cache:
            cached_url = await self.cache.get(cache_key(keyword))
            if cached_url:
                return cached_url

        link = self.get_link(keyword)
        if not link:
            return None

        if self.cache:
            await self.cache.set(cache_key(keyword), link.url, ttl=settings.cache_ttl)
        return link.url

    async def record_click(self, event: ClickEvent) -> bool:
        """Hand a click to the worker through the queue"""
        if not self.queue:
            return False
        return await self.queue.publish(settings.queue_name, event)

    # Creation

    async def create_short_url(
        self,
        url: str,
        keyword: Optional[str] = None,
        title: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> ShortURL:
        """
        Shorten a long URL.

        Raises:
            InvalidURLError: missing URL or protocol not allowed
            DuplicateURLError: URL already shortened and unique URLs are on
            KeywordError: custom keyword invalid, reserved or taken
            KeywordGenerationError: no generated keyword could be inserted
        """
        url = sanitize_url_safe(url)
        if not url:
            raise InvalidURLError("Missing or malformed URL")

        if settings.unique_urls:
            existing = self.db.query(ShortURL).filter(ShortURL.url == url).first()
            if existing:
                raise DuplicateURLError(f"{url} already exists in database", existing)

        custom = bool(keyword)
        if custom:
            cleaned = self.sanitize_keyword(keyword, restrict_to_charset=True)
            if not cleaned:
                raise KeywordError(f"Short URL {keyword} contains no valid characters")
            if not self.keyword_is_free(cleaned):
                raise KeywordError(f"Short URL {cleaned} already exists in database or is reserved")
            keyword = cleaned

        for _ in range(INSERT_ATTEMPTS):
            if not custom:
                keyword = self.keyword_strategy.generate(self.db, self.keyword_is_free)
            link = self._insert(ShortURL(keyword=keyword, url=url, title=title, ip=ip, clicks=0))
            if link is not None:
                break
            if custom:
                raise KeywordError(f"Short URL {keyword} already exists in database or is reserved")
            logger.warning("Keyword %s was inserted by a concurrent request, generating another", keyword)
        else:
            raise KeywordGenerationError(f"Generated keywords were taken {INSERT_ATTEMPTS} times in a row")

        logger.info("Created short URL %s -> %s", keyword, url)

        if self.cache:
            await self.cache.set(cache_key(keyword), url, ttl=settings.cache_ttl)
        return link

    def _insert(self, link: ShortURL) -> Optional[ShortURL]:
        """Commit a new link; None when its keyword already exists"""
        self.db.add(link)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return None
        self.db.refresh(link)
        return link

    # Aggregates

    def get_db_stats(self) -> Dict[str, int]:
        total_links, total_clicks = self.db.query(
            func.count(ShortURL.keyword), func.coalesce(func.sum(ShortURL.clicks), 0)
        ).one()
        return {"total_links": int(total_links), "total_clicks": int(total_clicks)}

    def get_links(self, filter_name: str = "top", limit: int = 10, start: int = 0) -> List[ShortURL]:
        order = LINK_FILTERS.get(filter_name, LINK_FILTERS["top"])
        return (
            self.db.query(ShortURL)
            .order_by(order)
            .offset(max(start, 0))
            .limit(max(limit, 1))
            .all()
        )

    def short_url_for(self, keyword: str) -> str:
        return f"{settings.site_url.rstrip('/')}/{keyword}"
