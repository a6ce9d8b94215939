from urllib.parse import parse_qs, urlsplit

import pytest

from loader_app.routing.protocol import (
    add_query_arg,
    get_protocol,
    get_protocol_slashes_and_rest,
    is_allowed_protocol,
    sanitize_url_safe,
)
from loader_app.routing.request import ParsedRequest, get_request, parse_request
from loader_app.routing.selector import RouteAction, select_route

ADMIN = "http://sho.rt/admin/index.php"
SITE = "http://sho.rt"


def decide(request, known=(), allow_duplicates=False):
    return select_route(
        parse_request(request),
        is_known=lambda kw: kw in known,
        allow_duplicate_longurls=allow_duplicates,
        admin_url=ADMIN,
        site_url=SITE,
    )


class TestRequestParsing:
    """Request extraction and shape parsing"""

    @pytest.mark.parametrize("request_string, expected", [
        ("abc", ("abc", None, None)),
        ("abc+", ("abc", "+", None)),
        ("abc+all", ("abc", "+all", "all")),
        ("abc/", ("abc", None, None)),
        ("abc+/", ("abc", "+", None)),
        ("abc+all/", ("abc", "+all", "all")),
    ])
    def test_shapes(self, request_string, expected):
        """Keyword, stats and aggregated stats, with or without a trailing slash"""
        assert parse_request(request_string) == ParsedRequest(*expected)

    @pytest.mark.parametrize("request_string", [
        "abc", "abc/", "abc//", "a+b", "c++", "x+all+", "k+all/", "k+", "a/b/", "+all",
    ])
    def test_parts_rebuild_the_request(self, request_string):
        """Keyword and stats suffix give back the request minus one trailing slash"""
        parsed = parse_request(request_string)
        expected = request_string[:-1] if request_string.endswith("/") else request_string
        assert parsed.keyword + (parsed.stats or "") == expected

    def test_empty_request(self):
        """Nothing to parse gives an empty result"""
        assert parse_request("") == ParsedRequest(None, None, None)

    def test_get_request_strips_site_path(self):
        """A site hosted in a sub-directory is removed from the path"""
        assert get_request("http://sho.rt/links", "/links/abc") == "abc"
        assert get_request("http://sho.rt", "/abc+") == "abc+"

    def test_get_request_keeps_query_of_full_urls(self):
        """The query string belongs to a pasted URL, not to the loader"""
        assert get_request(SITE, "/http://example.com/", "p=1") == "http://example.com/?p=1"
        assert get_request(SITE, "/abc", "utm=1") == "abc"

    def test_get_request_drops_control_characters(self):
        assert get_request(SITE, "/ab\x00c\n") == "abc"


class TestProtocol:
    """Scheme detection and URL helpers"""

    def test_get_protocol(self):
        assert get_protocol("https://example.com") == "https://"
        assert get_protocol("mailto:someone@example.com") == "mailto:"
        assert get_protocol("example.com") == ""

    def test_allowed_protocols(self):
        assert is_allowed_protocol("http://example.com")
        assert is_allowed_protocol("HTTPS://example.com")
        assert not is_allowed_protocol("javascript:alert(1)")
        assert not is_allowed_protocol("abc")

    def test_sanitize_refuses_unknown_scheme(self):
        assert sanitize_url_safe("javascript:alert(1)") == ""
        assert sanitize_url_safe(" http://example.com/a b ") == "http://example.com/ab"

    def test_protocol_slashes_and_rest(self):
        parts = get_protocol_slashes_and_rest("http://example.com/page?x=1", ("up", "us", "ur"))
        assert parts == {"up": "http:", "us": "//", "ur": "example.com/page?x=1"}
        assert get_protocol_slashes_and_rest("example.com") is None

    def test_add_query_arg_replaces_values(self):
        url = add_query_arg({"a": "2", "b": "x y"}, "http://sho.rt/?a=1")
        assert parse_qs(urlsplit(url).query) == {"a": ["2"], "b": ["x y"]}


class TestRouteSelection:
    """One outcome per request, in priority order"""

    def test_full_url_goes_to_bookmarklet(self):
        """Absolute URLs land on the admin prefill page"""
        decision = decide("http://example.com/page")

        assert decision.action == RouteAction.BOOKMARKLET
        assert decision.status_code == 302
        query = parse_qs(urlsplit(decision.location).query)
        assert query == {"up": ["http:"], "us": ["//"], "ur": ["example.com/page"]}
        assert decision.location.startswith(ADMIN + "?")

    def test_full_url_wins_over_known_keyword(self):
        """The keyword table is not consulted for a full URL"""
        decision = decide("http://example.com", known={"http://example.com"})
        assert decision.action == RouteAction.BOOKMARKLET

    def test_mailto_has_no_slashes(self):
        decision = decide("mailto:someone@example.com")
        query = parse_qs(urlsplit(decision.location).query, keep_blank_values=True)
        assert query["up"] == ["mailto:"]
        assert query["us"] == [""]

    @pytest.mark.parametrize("request_string", ["javascript:alert(1)", "http://", "http:/"])
    def test_refused_scheme_gets_bare_admin_page(self, request_string):
        """Scheme-shaped requests never reach the keyword lookup"""
        decision = decide(request_string, known={parse_request(request_string).keyword})
        assert decision.action == RouteAction.BOOKMARKLET
        assert decision.location == ADMIN
        assert decision.status_code == 302

    def test_known_keyword_goes(self):
        decision = decide("abc", known={"abc"})
        assert decision.action == RouteAction.GO
        assert decision.keyword == "abc"

    def test_stats_suffix(self):
        decision = decide("abc+", known={"abc"})
        assert decision.action == RouteAction.STATS
        assert decision.aggregate is False

    @pytest.mark.parametrize("request_string, allow_duplicates, aggregate", [
        ("abc+all", True, True),
        ("abc+all", False, False),
        ("abc+", True, False),
    ])
    def test_aggregate_needs_all_and_duplicates(self, request_string, allow_duplicates, aggregate):
        """Aggregation iff +all and duplicate long URLs are allowed"""
        decision = decide(request_string, known={"abc"}, allow_duplicates=allow_duplicates)
        assert decision.action == RouteAction.STATS
        assert decision.aggregate is aggregate

    def test_unknown_keyword_goes_to_root(self):
        decision = decide("nope")
        assert decision.action == RouteAction.ROOT
        assert decision.location == SITE
        assert decision.status_code == 302

    def test_empty_request_goes_to_root(self):
        assert decide("").action == RouteAction.ROOT
