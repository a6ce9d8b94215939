"""
Go controller: the terminal step for a keyword that is a page or a short
URL. Pages are rendered, short URLs redirect and record a click, anything
else goes back to the site root.
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from loader_app.config import settings
from loader_app.queue.models import ClickEvent
from loader_app.services.keyword_service import KeywordService
from loader_app.services.page_service import PageService

logger = logging.getLogger(__name__)


def click_event_for(keyword: str, request: Request) -> ClickEvent:
    return ClickEvent(
        keyword=keyword,
        ip_address=request.client.host if request.client else None,
        user_agent=(request.headers.get("user-agent") or "")[:255] or None,
        referrer=(request.headers.get("referer") or "direct")[:200],
        country_code=request.headers.get("cf-ipcountry"),
    )


async def go(
    keyword: Optional[str],
    request: Request,
    keyword_service: KeywordService,
    page_service: PageService,
) -> Response:
    if keyword is None:
        logger.debug("redirect_no_keyword")
        return RedirectResponse(url=settings.site_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)

    keyword = keyword_service.sanitize_keyword(keyword)

    if page_service.is_page(keyword):
        html = page_service.render(keyword, site_url=settings.site_url, app_name=settings.app_name)
        return HTMLResponse(html)

    long_url = await keyword_service.get_keyword_longurl(keyword)
    if long_url:
        # The worker updates clicks and the log; the redirect doesn't wait for it
        await keyword_service.record_click(click_event_for(keyword, request))
        return RedirectResponse(url=long_url, status_code=settings.redirect_status)

    logger.info("redirect_keyword_not_found: %s", keyword)
    return RedirectResponse(url=settings.site_url, status_code=status.HTTP_302_FOUND)
