"""
Programmatic API: `GET|POST /api?action=...&format=...`

Actions: shorturl, stats, db-stats, url-stats, expand, version.
Formats: xml (default), json, jsonp, simple.
"""

import json
import logging
import re
import secrets
from typing import Any, Callable, Dict, Optional
from xml.etree import ElementTree

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response

from loader_app.config import settings
from loader_app.dependencies import get_keyword_service
from loader_app.exceptions import DuplicateURLError, LoaderError
from loader_app.schemas.link import LinkInfo
from loader_app.services.keyword_service import KeywordService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])

JSONP_CALLBACK = re.compile(r"^[a-zA-Z_$][\w$.]*$")
UNKNOWN_ACTION = 'Unknown or missing "action" parameter'


def link_payload(link) -> Dict[str, Any]:
    return LinkInfo.model_validate(link).model_dump(mode="json")


def keyword_from_shorturl(service: KeywordService, shorturl: str) -> str:
    """Accept either a keyword or a full short URL"""
    shorturl = (shorturl or "").strip()
    site = settings.site_url.rstrip("/") + "/"
    if shorturl.startswith(site):
        shorturl = shorturl[len(site):]
    return service.sanitize_keyword(shorturl.rstrip("/"))


async def action_shorturl(params: Dict[str, str], service: KeywordService, request: Request) -> Dict[str, Any]:
    url = params.get("url", "")
    keyword = params.get("keyword") or None
    title = params.get("title") or None
    ip = request.client.host if request.client else None

    try:
        link = await service.create_short_url(url, keyword=keyword, title=title, ip=ip)
    except DuplicateURLError as e:
        existing = link_payload(e.existing)
        return {
            "status": "fail",
            "code": "error:url",
            "url": existing,
            "message": e.message,
            "title": existing["title"],
            "shorturl": existing["shorturl"],
            "errorCode": 400,
            "statusCode": 200,
            "simple": existing["shorturl"],
        }
    except LoaderError as e:
        return {
            "status": "fail",
            "code": e.code,
            "message": e.message,
            "errorCode": e.status_code,
            "statusCode": e.status_code,
            "simple": e.message,
        }

    payload = link_payload(link)
    return {
        "url": payload,
        "status": "success",
        "message": f"{payload['url']} added to database",
        "title": payload["title"],
        "shorturl": payload["shorturl"],
        "statusCode": 200,
        "simple": payload["shorturl"],
    }


async def action_expand(params: Dict[str, str], service: KeywordService, request: Request) -> Dict[str, Any]:
    keyword = keyword_from_shorturl(service, params.get("shorturl", ""))
    link = service.get_link(keyword) if keyword else None
    if not link:
        return {
            "keyword": keyword,
            "simple": "not found",
            "message": "Error: short URL not found",
            "errorCode": 404,
            "statusCode": 404,
        }
    return {
        "keyword": link.keyword,
        "shorturl": service.short_url_for(link.keyword),
        "longurl": link.url,
        "title": link.title,
        "simple": link.url,
        "message": "success",
        "statusCode": 200,
    }


async def action_url_stats(params: Dict[str, str], service: KeywordService, request: Request) -> Dict[str, Any]:
    keyword = keyword_from_shorturl(service, params.get("shorturl", ""))
    link = service.get_link(keyword) if keyword else None
    if not link:
        return {
            "statusCode": 404,
            "message": "Error: short URL not found",
            "errorCode": 404,
            "simple": "not found",
        }
    return {
        "statusCode": 200,
        "message": "success",
        "link": link_payload(link),
        "simple": f"Clicks: {link.clicks}",
    }


async def action_stats(params: Dict[str, str], service: KeywordService, request: Request) -> Dict[str, Any]:
    filter_name = params.get("filter", "top")
    try:
        limit = int(params.get("limit", 10))
        start = int(params.get("start", 0))
    except ValueError:
        limit, start = 10, 0

    links = service.get_links(filter_name, limit, start)
    return {
        "links": {f"link_{i}": link_payload(link) for i, link in enumerate(links, start=1)},
        "stats": service.get_db_stats(),
        "statusCode": 200,
        "message": "success",
        "simple": "Stats need the json or xml format",
    }


async def action_db_stats(params: Dict[str, str], service: KeywordService, request: Request) -> Dict[str, Any]:
    stats = service.get_db_stats()
    return {
        "db-stats": stats,
        "statusCode": 200,
        "message": "success",
        "simple": f"Links: {stats['total_links']}, clicks: {stats['total_clicks']}",
    }


async def action_version(params: Dict[str, str], service: KeywordService, request: Request) -> Dict[str, Any]:
    return {"version": settings.app_version, "simple": settings.app_version, "statusCode": 200}


API_ACTIONS: Dict[str, Callable] = {
    "shorturl": action_shorturl,
    "stats": action_stats,
    "db-stats": action_db_stats,
    "url-stats": action_url_stats,
    "expand": action_expand,
    "version": action_version,
}


def is_authorized(params: Dict[str, str]) -> bool:
    """Signature token or admin username/password; everything passes on a public install"""
    if not settings.private:
        return True

    signature = params.get("signature")
    if signature and settings.api_signature and secrets.compare_digest(signature, settings.api_signature):
        return True

    username = params.get("username")
    password = params.get("password")
    return bool(
        username and password and settings.admin_password
        and secrets.compare_digest(username, settings.admin_username)
        and secrets.compare_digest(password, settings.admin_password)
    )


def _xml_element(parent: ElementTree.Element, key: str, value: Any) -> None:
    tag = key if re.match(r"^[a-zA-Z_][\w.-]*$", key) else "item"
    child = ElementTree.SubElement(parent, tag)
    if isinstance(value, dict):
        for k, v in value.items():
            _xml_element(child, str(k), v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            _xml_element(child, "item", v)
    elif value is not None:
        child.text = str(value)


def render_api_output(fmt: str, payload: Dict[str, Any], callback: Optional[str] = None) -> Response:
    """Serialize an action payload in the requested format"""
    status_code = int(payload.get("statusCode") or payload.get("errorCode") or 200)
    data = jsonable_encoder(payload)

    if fmt == "jsonp" and callback:
        body = f"{callback}({json.dumps(data)})"
        return Response(content=body, status_code=status_code, media_type="application/javascript")

    if fmt in ("json", "jsonp"):
        return Response(content=json.dumps(data), status_code=status_code, media_type="application/json")

    if fmt == "simple":
        simple = data.get("simple", data.get("message", ""))
        return Response(content=str(simple), status_code=status_code, media_type="text/plain; charset=utf-8")

    root = ElementTree.Element("result")
    for key, value in data.items():
        _xml_element(root, key, value)
    body = '<?xml version="1.0" encoding="UTF-8"?>\n' + ElementTree.tostring(root, encoding="unicode")
    return Response(content=body, status_code=status_code, media_type="application/xml")


@router.api_route("/api", methods=["GET", "POST"])
async def api(request: Request, keyword_service: KeywordService = Depends(get_keyword_service)):
    params: Dict[str, str] = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        params.update({k: v for k, v in form.items() if isinstance(v, str)})

    callback = params.get("callback") or params.get("jsonp")
    if callback and not JSONP_CALLBACK.match(callback):
        callback = None
    fmt = params.get("format", "xml").lower()

    if not is_authorized(params):
        logger.warning("Unauthorized API call from %s", request.client.host if request.client else "-")
        payload = {"message": "Please log in", "errorCode": 403, "statusCode": 403, "simple": "Please log in"}
        return render_api_output(fmt, payload, callback)

    action = params.get("action")
    logger.debug("api: action=%s", action)

    handler = API_ACTIONS.get(action)
    if handler is None:
        payload = {"errorCode": 400, "message": UNKNOWN_ACTION, "simple": UNKNOWN_ACTION}
    else:
        payload = await handler(params, keyword_service, request)

    if callback:
        payload["callback"] = callback
    return render_api_output(fmt, payload, callback)
