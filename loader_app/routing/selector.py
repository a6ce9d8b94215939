"""
Route selection for a parsed request.

A priority-ordered chain with exactly one outcome per request. "Nothing
matched" is itself a valid outcome (redirect to the site root), never an
error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from loader_app.routing.protocol import (
    add_query_arg,
    get_protocol,
    get_protocol_slashes_and_rest,
    sanitize_url_safe,
)
from loader_app.routing.request import ParsedRequest


class RouteAction(Enum):
    BOOKMARKLET = "bookmarklet"  # full URL pasted after the domain
    GO = "go"                    # redirect to long URL or render a page
    STATS = "stats"              # keyword+ or keyword+all
    ROOT = "root"                # nothing matched


@dataclass(frozen=True)
class RouteDecision:
    action: RouteAction
    keyword: Optional[str] = None
    aggregate: bool = False
    location: Optional[str] = None
    status_code: Optional[int] = None


def bookmarklet_location(url: str, admin_url: str, allowed: Optional[Iterable[str]] = None) -> str:
    """
    Admin URL with the pasted URL split into up/us/ur query parameters.
    A URL whose protocol is not allowed gets the bare admin URL.
    """
    safe_url = sanitize_url_safe(url, allowed)
    parts = get_protocol_slashes_and_rest(safe_url, ("up", "us", "ur"))
    if not parts:
        return admin_url
    return add_query_arg(parts, admin_url)


def select_route(
    parsed: ParsedRequest,
    *,
    is_known: Callable[[str], bool],
    allow_duplicate_longurls: bool,
    admin_url: str,
    site_url: str,
    allowed_protocols: Optional[Iterable[str]] = None,
) -> RouteDecision:
    """
    Pick the terminal action for a request.

    `is_known` answers "is this an existing keyword or an existing page".
    It is not consulted for full URLs, which always go to the admin
    prefill flow even if the same string happens to be a keyword.
    Any string that starts with a scheme counts as a full URL; refused
    schemes reach the admin page without a prefill.
    """
    keyword, stats, stats_all = parsed

    if keyword and get_protocol(keyword):
        return RouteDecision(
            action=RouteAction.BOOKMARKLET,
            keyword=keyword,
            location=bookmarklet_location(keyword, admin_url, allowed_protocols),
            status_code=302,
        )

    if keyword and is_known(keyword):
        if not stats:
            return RouteDecision(action=RouteAction.GO, keyword=keyword)
        return RouteDecision(
            action=RouteAction.STATS,
            keyword=keyword,
            aggregate=bool(stats_all) and allow_duplicate_longurls,
        )

    return RouteDecision(
        action=RouteAction.ROOT,
        keyword=keyword,
        location=site_url,
        status_code=302,
    )
