"""
URL scheme helpers used by the bookmarklet (prefix-n-shorten) flow and by
long URL validation.
"""

import re
from typing import Dict, Iterable, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from loader_app.config import settings


# A scheme starts with a letter followed by letters, digits, "+", "." or "-",
# then a colon and optionally "//"
PROTOCOL = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]+:(//)?")
UNSAFE_URL_CHARS = re.compile(r"[^a-zA-Z0-9$\-_.+!*'(),{}|\\^~\[\]`<>#%\";/?:@&=]")


def get_protocol(url: Optional[str]) -> str:
    """Return "http://", "mailto:" etc, or an empty string"""
    if not url:
        return ""
    match = PROTOCOL.match(url)
    return match.group(0) if match else ""


def is_allowed_protocol(url: Optional[str], allowed: Optional[Iterable[str]] = None) -> bool:
    protocol = get_protocol(url).lower()
    if not protocol:
        return False
    allowed = settings.allowed_protocols if allowed is None else allowed
    return protocol in {p.lower() for p in allowed}


def sanitize_url_safe(url: Optional[str], allowed: Optional[Iterable[str]] = None) -> str:
    """Strip characters that have no business in a URL; empty if the protocol is refused"""
    if not url:
        return ""
    cleaned = UNSAFE_URL_CHARS.sub("", url.strip())
    if not is_allowed_protocol(cleaned, allowed):
        return ""
    return cleaned


def get_protocol_slashes_and_rest(
    url: str,
    names: Sequence[str] = ("protocol", "slashes", "rest"),
) -> Optional[Dict[str, str]]:
    """
    Split "http://example.com/x" into
    {"protocol": "http:", "slashes": "//", "rest": "example.com/x"}.

    Returns None when the URL has no protocol.
    """
    protocol = get_protocol(url)
    if not protocol or len(names) != 3:
        return None
    rest = url[len(protocol):]
    scheme, _, slashes = protocol.partition(":")
    return {names[0]: scheme + ":", names[1]: slashes, names[2]: rest}


def add_query_arg(params: Dict[str, str], url: str) -> str:
    """Append params to url, replacing any existing values for the same names"""
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))
