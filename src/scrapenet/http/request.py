"""Request description built up before execution."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Optional, Union
from urllib.parse import parse_qsl, urlencode

from requests.structures import CaseInsensitiveDict

from ..cookies import Cookie, CookieJar
from ..exceptions import RedirectLoopError

Pairs = Union[Mapping[str, str], Iterable[tuple[str, str]]]


class Method(str, Enum):
    """HTTP methods a request can use."""

    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"
    PUT = "PUT"
    OPTIONS = "OPTIONS"
    DELETE = "DELETE"
    TRACE = "TRACE"


# Methods rewritten to GET when a redirect is followed
UNSAFE_METHODS = frozenset({Method.POST, Method.PUT, Method.DELETE})

# Methods that may carry a body
BODY_METHODS = frozenset({Method.POST, Method.PUT})

# Headers describing a body, dropped along with it
BODY_HEADERS = ("Content-Type", "Content-Length")


class CookiePolicy(str, Enum):
    """Where a request takes its Cookie header from."""

    USE_JAR = "use_jar"
    USE_EXPLICIT_LIST = "use_explicit_list"
    USE_EXTERNAL_MAP = "use_external_map"
    NONE = "none"


def encode_pairs(pairs: Pairs, charset: str = "utf-8") -> str:
    """URL-encode name/value pairs as ``a=1&b=2``."""
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    return urlencode(list(items), encoding=charset)


def set_query(url: str, pairs: Pairs, charset: str = "utf-8") -> str:
    """Return ``url`` with an encoded query string, or ``url`` if ``pairs`` is empty."""
    query = encode_pairs(pairs, charset)
    if not query:
        return url
    return f"{url}?{query}"


def parse_query(query: Optional[str]) -> list[tuple[str, str]]:
    """Split a query string into decoded name/value pairs."""
    if not query:
        return []
    return parse_qsl(query, keep_blank_values=True)


class RequestSpec:
    """
    Describes one logical HTTP request. Pure data, no I/O.

    Unset timeouts inherit the transport defaults at execution time.
    Fluent setters return ``self`` so calls can be chained.

    Example:
        spec = (
            RequestSpec(Method.POST, "https://example.com/login", connect_timeout=5)
            .header("Referer", "https://example.com/")
            .form({"user": "jc", "password": "denton"})
        )
        envelope = engine.execute(spec)
    """

    def __init__(
        self,
        method: Union[Method, str],
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        proxy: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        follow_redirects: bool = False,
        ignored_codes: Iterable[int] = (),
        cache: bool = True,
        close_after_execute: bool = False,
        body: Optional[bytes] = None,
        request_cookies: bool = True,
        store_cookies: bool = True,
    ) -> None:
        """
        Args:
            method: HTTP method
            url: Absolute request URL
            headers: Request headers, overriding transport defaults
            proxy: Proxy URL for this request only
            connect_timeout: Connect timeout in seconds
            read_timeout: Read timeout in seconds
            follow_redirects: Follow 302 responses (301 is always followed)
            ignored_codes: Status codes that skip internal handlers
            cache: When False, ask intermediaries not to serve cached copies
            close_after_execute: Close the envelope before returning it
            body: Raw payload for POST/PUT
            request_cookies: Attach cookies from the transport jar
            store_cookies: Store response cookies in the transport jar
        """
        self.method = Method(method)
        self.url = url
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        self.proxy = proxy
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.follow_redirects = follow_redirects
        self.ignored_codes: frozenset[int] = frozenset(ignored_codes)
        self.cache = cache
        self.close_after_execute = close_after_execute
        self.body = body
        self.cookies: Optional[list[Cookie]] = None
        self.cookie_store: Optional[CookieJar] = None
        self.request_cookies = request_cookies
        self.store_cookies = store_cookies

    @staticmethod
    def derive(
        other: RequestSpec,
        method: Union[Method, str, None] = None,
        url: Optional[str] = None,
    ) -> RequestSpec:
        """
        Build a spec from ``other`` with a new method and URL.

        Headers, explicit cookies and the cookie store are shared by
        reference, not copied.
        """
        spec = RequestSpec(method or other.method, url or other.url)
        spec._inherit(other)
        return spec

    def _inherit(self, other: RequestSpec) -> None:
        self.headers = other.headers
        self.proxy = other.proxy
        self.connect_timeout = other.connect_timeout
        self.read_timeout = other.read_timeout
        self.follow_redirects = other.follow_redirects
        self.ignored_codes = other.ignored_codes
        self.cache = other.cache
        self.close_after_execute = other.close_after_execute
        self.body = other.body
        self.cookies = other.cookies
        self.cookie_store = other.cookie_store
        self.request_cookies = other.request_cookies
        self.store_cookies = other.store_cookies

    @property
    def cookie_policy(self) -> CookiePolicy:
        if self.cookie_store is not None:
            return CookiePolicy.USE_EXTERNAL_MAP
        if self.cookies:
            return CookiePolicy.USE_EXPLICIT_LIST
        if self.request_cookies:
            return CookiePolicy.USE_JAR
        return CookiePolicy.NONE

    def header(self, name: str, value: Optional[str]) -> RequestSpec:
        """Set a request header, or remove it when ``value`` is None."""
        if value is None:
            self.headers.pop(name, None)
        else:
            self.headers[name] = value
        return self

    def ignore_code(self, status: int) -> RequestSpec:
        """Skip internal handlers for ``status``; it is returned to the caller as-is."""
        # Rebound, never mutated: derived specs share the previous set
        self.ignored_codes = self.ignored_codes | {status}
        return self

    def payload(self, body: Optional[bytes]) -> RequestSpec:
        self.body = body
        return self

    def form(self, pairs: Pairs, charset: str = "utf-8") -> RequestSpec:
        """Use URL-encoded ``pairs`` as the body."""
        self.body = encode_pairs(pairs, charset).encode(charset)
        return self

    def cookie(self, cookie: Cookie) -> RequestSpec:
        """Send ``cookie`` explicitly instead of consulting the transport jar."""
        if self.cookies is None:
            self.cookies = []
        self.cookies.append(cookie)
        return self

    def add_cookies(self, cookies: Iterable[Cookie]) -> RequestSpec:
        if self.cookies is None:
            self.cookies = []
        self.cookies.extend(cookies)
        return self

    def use(self, store: Optional[CookieJar]) -> RequestSpec:
        """
        Read and write cookies through ``store`` instead of the transport jar.
        """
        self.cookie_store = store
        return self

    def reset(self) -> RequestSpec:
        """Clear everything except method and URL."""
        self.headers = CaseInsensitiveDict()
        self.proxy = None
        self.connect_timeout = None
        self.read_timeout = None
        self.follow_redirects = False
        self.ignored_codes = frozenset()
        self.cache = True
        self.close_after_execute = False
        self.body = None
        self.cookies = None
        self.cookie_store = None
        self.request_cookies = True
        self.store_cookies = True
        return self

    def __repr__(self) -> str:
        return f"{self.method.value} : {self.url}"


class RedirectContinuation(RequestSpec):
    """
    A resend of ``original`` after a redirect, counting hops.

    Each hop builds a new continuation carrying the count forward, so the
    caller's spec is never mutated and chains started from the same spec
    never share a counter. Unsafe methods are downgraded to GET and lose
    their body along with Content-Type and Content-Length.
    """

    def __init__(self, original: RequestSpec, url: str, hops: int = 1) -> None:
        method = Method.GET if original.method in UNSAFE_METHODS else original.method
        super().__init__(method, url)
        self._inherit(original)
        if method is not original.method:
            self.body = None
            # Own header map: the caller keeps its body headers
            self.headers = CaseInsensitiveDict(original.headers)
            for name in BODY_HEADERS:
                self.headers.pop(name, None)
        self.original = getattr(original, "original", original)
        self.hops = hops

    def redirect_to(self, url: str) -> RedirectContinuation:
        """Next hop of the same chain."""
        return RedirectContinuation(self, url, hops=self.hops)

    def advance(self, max_redirects: int) -> None:
        """
        Count this hop before it is sent.

        Raises:
            RedirectLoopError: If the chain already used ``max_redirects`` hops
        """
        if self.hops > max_redirects:
            raise RedirectLoopError(self.url, self.hops)
        self.hops += 1
