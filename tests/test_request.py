"""Tests for RequestSpec and redirect continuations."""

import pytest

from scrapenet import Cookie, CookieJar, CookiePolicy, Method, RedirectContinuation, RequestSpec
from scrapenet.exceptions import RedirectLoopError
from scrapenet.http import encode_pairs, parse_query, set_query


class TestQueryHelpers:
    """Tests for URL-encoding helpers."""

    def test_encode_pairs(self):
        """Test mapping and pair-list input."""
        assert encode_pairs({"a": "1", "b": "x y"}) == "a=1&b=x+y"
        assert encode_pairs([("q", "é")]) == "q=%C3%A9"

    def test_set_query(self):
        """Test appending a query string."""
        assert set_query("http://example.com/s", {"q": "a&b"}) == "http://example.com/s?q=a%26b"
        assert set_query("http://example.com/s", {}) == "http://example.com/s"

    def test_parse_query(self):
        """Test decoding a query string."""
        assert parse_query("a=1&b=x+y&c=") == [("a", "1"), ("b", "x y"), ("c", "")]
        assert parse_query(None) == []


class TestRequestSpec:
    """Tests for the request builder."""

    def test_defaults(self):
        """Test construction defaults."""
        spec = RequestSpec(Method.GET, "http://example.com/")
        assert spec.follow_redirects is False
        assert spec.cache is True
        assert spec.store_cookies is True
        assert spec.connect_timeout is None
        assert spec.ignored_codes == frozenset()
        assert spec.cookie_policy is CookiePolicy.USE_JAR

    def test_method_from_string(self):
        """Test that string methods are accepted."""
        assert RequestSpec("POST", "http://example.com/").method is Method.POST

    def test_invalid_method(self):
        """Test that unknown methods are rejected."""
        with pytest.raises(ValueError):
            RequestSpec("FETCH", "http://example.com/")

    def test_headers_case_insensitive(self):
        """Test header lookup ignores case."""
        spec = RequestSpec(Method.GET, "http://example.com/").header("User-Agent", "Y")
        assert spec.headers["user-agent"] == "Y"

    def test_header_none_removes(self):
        """Test that a None value removes the header."""
        spec = RequestSpec(Method.GET, "http://example.com/", headers={"X-A": "1"})
        spec.header("x-a", None)
        assert "X-A" not in spec.headers

    def test_form_body(self):
        """Test URL-encoded form payloads."""
        spec = RequestSpec(Method.POST, "http://example.com/").form({"user": "jc", "pw": "a b"})
        assert spec.body == b"user=jc&pw=a+b"

    def test_cookie_policies(self):
        """Test policy selection from cookie settings."""
        spec = RequestSpec(Method.GET, "http://example.com/")
        spec.cookie(Cookie("sid", "1", "example.com"))
        assert spec.cookie_policy is CookiePolicy.USE_EXPLICIT_LIST

        spec.use(CookieJar())
        assert spec.cookie_policy is CookiePolicy.USE_EXTERNAL_MAP

        none = RequestSpec(Method.GET, "http://example.com/", request_cookies=False)
        assert none.cookie_policy is CookiePolicy.NONE

    def test_ignore_code_is_copy_on_write(self):
        """Test ignoring a code on a derived spec leaves the source alone."""
        source = RequestSpec(Method.GET, "http://example.com/", ignored_codes=[404])
        derived = RequestSpec.derive(source, url="http://example.com/other")
        assert derived.ignored_codes is source.ignored_codes

        derived.ignore_code(500)
        assert source.ignored_codes == frozenset({404})
        assert derived.ignored_codes == frozenset({404, 500})

    def test_derive_shares_headers_and_cookies(self):
        """Test derived specs share headers and cookie lists by reference."""
        source = RequestSpec(Method.POST, "http://example.com/", headers={"X": "1"}, connect_timeout=3)
        source.cookie(Cookie("sid", "1", "example.com"))
        derived = RequestSpec.derive(source, Method.GET, "http://example.com/next")

        assert derived.method is Method.GET
        assert derived.url == "http://example.com/next"
        assert derived.headers is source.headers
        assert derived.cookies is source.cookies
        assert derived.connect_timeout == 3

    def test_reset(self):
        """Test reset keeps only method and URL."""
        spec = RequestSpec(
            Method.PUT, "http://example.com/", headers={"X": "1"}, follow_redirects=True, body=b"x"
        )
        spec.reset()
        assert spec.method is Method.PUT
        assert spec.url == "http://example.com/"
        assert len(spec.headers) == 0
        assert spec.follow_redirects is False
        assert spec.body is None

    def test_repr(self):
        """Test the readable form."""
        assert repr(RequestSpec(Method.GET, "http://example.com/")) == "GET : http://example.com/"


class TestRedirectContinuation:
    """Tests for redirect continuations."""

    def test_post_downgraded_to_get(self):
        """Test unsafe methods become GET without a body."""
        original = RequestSpec(Method.POST, "http://example.com/form", body=b"a=1")
        follow = RedirectContinuation(original, "http://example.com/new")
        assert follow.method is Method.GET
        assert follow.body is None
        assert original.method is Method.POST
        assert original.body == b"a=1"

    def test_downgrade_drops_body_headers(self):
        """Test the GET gets its own headers without Content-Type and Content-Length."""
        original = RequestSpec(Method.PUT, "http://example.com/doc", body=b"{}")
        original.header("Content-Type", "application/json").header("Content-Length", "2")
        original.header("Referer", "http://example.com/")
        follow = RedirectContinuation(original, "http://example.com/new")
        assert "Content-Type" not in follow.headers
        assert "Content-Length" not in follow.headers
        assert follow.headers["Referer"] == "http://example.com/"
        assert original.headers["Content-Type"] == "application/json"

    @pytest.mark.parametrize("method", [Method.GET, Method.HEAD, Method.OPTIONS])
    def test_safe_methods_kept(self, method):
        """Test safe methods survive the redirect."""
        follow = RedirectContinuation(RequestSpec(method, "http://example.com/"), "http://example.com/b")
        assert follow.method is method

    def test_original_tracked_across_hops(self):
        """Test every hop points back at the caller's spec."""
        original = RequestSpec(Method.GET, "http://example.com/a")
        first = RedirectContinuation(original, "http://example.com/b")
        second = first.redirect_to("http://example.com/c")
        assert second.original is original
        assert second.url == "http://example.com/c"

    def test_advance_counts_hops(self):
        """Test hops are counted and capped."""
        follow = RedirectContinuation(RequestSpec(Method.GET, "http://example.com/"), "http://example.com/")
        follow.advance(2)
        nxt = follow.redirect_to("http://example.com/")
        nxt.advance(2)
        last = nxt.redirect_to("http://example.com/")
        with pytest.raises(RedirectLoopError) as exc_info:
            last.advance(2)
        assert exc_info.value.hops == 3
