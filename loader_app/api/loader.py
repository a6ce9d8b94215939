import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from loader_app.api.go import go
from loader_app.config import settings
from loader_app.dependencies import get_keyword_service, get_page_service, get_stats_service
from loader_app.routing.request import get_request, parse_request
from loader_app.routing.selector import RouteAction, select_route
from loader_app.services.keyword_service import KeywordService
from loader_app.services.page_service import PageService
from loader_app.services.stats_service import StatsService

logger = logging.getLogger(__name__)

# Longest request text written to a log line
LOG_REQUEST_MAX = 200

router = APIRouter(tags=["loader"])


def clip(text: str) -> str:
    if text and len(text) > LOG_REQUEST_MAX:
        return f"{text[:LOG_REQUEST_MAX]}...({len(text)} chars)"
    return text


@router.get("/{path:path}", include_in_schema=False)
async def load(
    request: Request,
    keyword_service: KeywordService = Depends(get_keyword_service),
    page_service: PageService = Depends(get_page_service),
    stats_service: StatsService = Depends(get_stats_service),
):
    """
    Front loader for every path not claimed by another route.

    Classifies the path (bookmarklet URL, keyword, keyword+ stats,
    keyword+all aggregated stats) and hands off to the matching handler,
    falling back to a redirect to the site root.
    """
    raw_request = get_request(settings.site_url, request.url.path, request.url.query)
    parsed = parse_request(raw_request)
    logger.debug("pre_load_template: %r (stats=%s)", clip(raw_request), parsed.stats)

    decision = select_route(
        parsed,
        is_known=lambda kw: keyword_service.keyword_is_taken(kw) or page_service.is_page(kw),
        allow_duplicate_longurls=settings.allow_duplicate_longurls,
        admin_url=settings.admin_index_url,
        site_url=settings.site_url,
    )

    if decision.action == RouteAction.BOOKMARKLET:
        logger.info("pre_redirect_bookmarklet: %s", clip(decision.keyword))
        return RedirectResponse(url=decision.location, status_code=decision.status_code)

    if decision.action == RouteAction.GO:
        logger.debug("load_template_go: %s", clip(decision.keyword))
        return await go(decision.keyword, request, keyword_service, page_service)

    if decision.action == RouteAction.STATS:
        logger.debug("load_template_infos: %s (aggregate=%s)", clip(decision.keyword), decision.aggregate)
        stats = stats_service.get_link_stats(decision.keyword, aggregate=decision.aggregate)
        if stats is None:
            return RedirectResponse(url=settings.site_url, status_code=status.HTTP_302_FOUND)
        return HTMLResponse(stats_service.render(stats))

    logger.info("loader_failed: %r", clip(raw_request))
    return RedirectResponse(url=decision.location, status_code=decision.status_code)
