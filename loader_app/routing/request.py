"""
Request extraction and request-shape parsing.

A request path relative to the site root is one of:
    "anything"       -> keyword
    "anything+"      -> stats page for that keyword
    "anything+all"   -> aggregated stats (when duplicate long URLs are allowed)
each optionally followed by one trailing slash.
"""

import re
from typing import NamedTuple, Optional
from urllib.parse import urlsplit


REQUEST_SHAPE = re.compile(r"^(.+?)(\+(all)?)?/?$")
FULL_URL = re.compile(r"^[a-zA-Z]+://.+")
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class ParsedRequest(NamedTuple):
    keyword: Optional[str]
    stats: Optional[str]      # None, "+" or "+all"
    stats_all: Optional[str]  # None or "all"


def get_request(site_url: str, path: str, query: str = "") -> str:
    """
    Return the request relative to the site root.

    For a site hosted at http://sho.rt/links, the path /links/abc gives "abc".
    The query string is dropped unless the request itself is a full URL, in
    which case it belongs to that URL ("/http://example.com/?p=1").
    """
    site_path = urlsplit(site_url).path.rstrip("/")
    request = path
    if site_path and (request == site_path or request.startswith(site_path + "/")):
        request = request[len(site_path):]
    request = request.lstrip("/")

    if query and FULL_URL.match(request):
        request = f"{request}?{query}"

    return CONTROL_CHARS.sub("", request).strip()


def parse_request(request: str) -> ParsedRequest:
    match = REQUEST_SHAPE.match(request or "")
    if not match:
        return ParsedRequest(None, None, None)
    keyword, stats, stats_all = match.groups()
    return ParsedRequest(keyword, stats, stats_all)
