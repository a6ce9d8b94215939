import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy import func
from sqlalchemy.orm import Session

from loader_app.config import settings
from loader_app.models.log import ClickLog
from loader_app.models.url import ShortURL
from loader_app.schemas.stats import DailyClicks, LinkStats

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)


class StatsService:
    """
    Builds and renders the statistics view for "keyword+" and
    "keyword+all" requests.
    """

    def __init__(self, db: Session, history_days: int = 30):
        self.db = db
        self.history_days = history_days

    def get_link_stats(self, keyword: str, aggregate: bool = False) -> Optional[LinkStats]:
        """
        Statistics for a keyword, or None when it is not a short URL.

        With aggregate, every keyword sharing the long URL is counted.
        """
        link = self.db.query(ShortURL).filter(ShortURL.keyword == keyword).first()
        if not link:
            return None

        keywords = [link.keyword]
        clicks = link.clicks or 0
        if aggregate:
            siblings = (
                self.db.query(ShortURL)
                .filter(ShortURL.url == link.url)
                .order_by(ShortURL.timestamp)
                .all()
            )
            keywords = [s.keyword for s in siblings]
            clicks = sum(s.clicks or 0 for s in siblings)

        return LinkStats(
            keyword=link.keyword,
            shorturl=f"{settings.site_url.rstrip('/')}/{link.keyword}",
            url=link.url,
            title=link.title,
            created=link.timestamp,
            clicks=clicks,
            aggregate=aggregate,
            aggregated_keywords=keywords if aggregate else [],
            referrers=self._count_by(ClickLog.referrer, keywords, default="direct"),
            countries=self._count_by(ClickLog.country_code, keywords, default="unknown"),
            daily_clicks=self._daily_clicks(keywords),
        )

    def render(self, stats: LinkStats) -> str:
        return templates.get_template("infos.html").render(
            stats=stats,
            site_url=settings.site_url,
            app_name=settings.app_name,
        )

    def _count_by(self, column, keywords: List[str], default: str) -> Dict[str, int]:
        rows = (
            self.db.query(column, func.count(ClickLog.click_id))
            .filter(ClickLog.shorturl.in_(keywords))
            .group_by(column)
            .order_by(func.count(ClickLog.click_id).desc())
            .all()
        )
        counts: Dict[str, int] = {}
        for value, count in rows:
            key = value or default
            counts[key] = counts.get(key, 0) + count
        return counts

    def _daily_clicks(self, keywords: List[str]) -> List[DailyClicks]:
        since = datetime.now(timezone.utc) - timedelta(days=self.history_days)
        day = func.date(ClickLog.click_time)
        rows = (
            self.db.query(day, func.count(ClickLog.click_id))
            .filter(ClickLog.shorturl.in_(keywords), ClickLog.click_time >= since)
            .group_by(day)
            .order_by(day)
            .all()
        )
        return [DailyClicks(date=str(date), clicks=count) for date, count in rows]
