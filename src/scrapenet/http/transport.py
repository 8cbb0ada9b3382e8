"""Raw connections and the defaults shared across requests."""

from __future__ import annotations

import logging
import platform
from types import TracebackType
from typing import IO, Optional

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.structures import CaseInsensitiveDict

from .. import __version__
from ..auth.manager import AuthenticationManager
from ..cookies import CookieJar
from ..exceptions import ConnectionError
from ..models.config import NetworkConfig, default_max_redirects
from .protocols import ConnectionListener, ResponseHandler

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _build_user_agent() -> str:
    return (
        f"scrapenet/{__version__} "
        f"({platform.system()} {platform.release()}; "
        f"{platform.python_implementation()} {platform.python_version()})"
    )


# e.g. "scrapenet/1.0.0 (Linux 6.1.0; CPython 3.12.2)"
AGENT_DEFAULT = _build_user_agent()


class Connection:
    """
    One request/response exchange, configured before :meth:`connect`.

    Wraps a requests adapter directly so no session-level cookie handling
    or redirect following gets in the way. The response body is left
    unread and undecoded on the underlying urllib3 response.
    """

    def __init__(self, adapter: BaseAdapter, url: str, proxy: Optional[str] = None) -> None:
        self.url = url
        self.proxy = proxy
        self.method = "GET"
        self.connect_timeout: Optional[float] = None
        self.read_timeout: Optional[float] = None
        self.body: Optional[bytes] = None
        self.request_headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self._adapter = adapter
        self._response: Optional[requests.Response] = None

    def set_header(self, name: str, value: str) -> None:
        self.request_headers[name] = value

    def get_header(self, name: str) -> Optional[str]:
        return self.request_headers.get(name)

    @property
    def connected(self) -> bool:
        return self._response is not None

    def connect(self) -> None:
        """
        Send the request and read the status line and headers.

        Raises:
            ConnectionError: On invalid URLs and DNS, TCP, TLS or timeout failures
        """
        proxies = {"http": self.proxy, "https": self.proxy} if self.proxy else {}

        try:
            prepared = requests.Request(
                self.method,
                self.url,
                headers=dict(self.request_headers),
                data=self.body,
            ).prepare()
            self._response = self._adapter.send(
                prepared,
                stream=True,
                timeout=(self.connect_timeout, self.read_timeout),
                verify=True,
                proxies=proxies,
            )
        except requests.RequestException as e:
            raise ConnectionError(f"{self.method} {self.url} failed: {e}", url=self.url) from e

    def _require_response(self) -> requests.Response:
        if self._response is None:
            raise RuntimeError("Connection not established. Call connect() first.")
        return self._response

    @property
    def status_code(self) -> int:
        return self._require_response().status_code

    @property
    def reason(self) -> str:
        return self._require_response().reason or ""

    @property
    def response_headers(self) -> CaseInsensitiveDict:
        return self._require_response().headers

    def header(self, name: str) -> Optional[str]:
        """Response header value, or None."""
        return self._require_response().headers.get(name)

    def header_values(self, name: str) -> list[str]:
        """Every value of a repeated response header, such as Set-Cookie."""
        response = self._require_response()
        raw_headers = getattr(response.raw, "headers", None)
        if raw_headers is not None and hasattr(raw_headers, "getlist"):
            return list(raw_headers.getlist(name))
        value = response.headers.get(name)
        return [value] if value is not None else []

    @property
    def content_type(self) -> Optional[str]:
        return self.header("Content-Type")

    @property
    def content_encoding(self) -> Optional[str]:
        return self.header("Content-Encoding")

    @property
    def content_length(self) -> int:
        """Declared Content-Length, or -1 when absent or invalid."""
        value = self.header("Content-Length")
        try:
            return int(value) if value is not None else -1
        except ValueError:
            return -1

    def raw_stream(self) -> IO[bytes]:
        """The undecoded response body."""
        return self._require_response().raw

    def disconnect(self) -> None:
        """Release the underlying connection back to the adapter."""
        if self._response is not None:
            self._response.close()

    def __repr__(self) -> str:
        return f"Connection({self.method} {self.url})"


class Transport:
    """
    Opens connections and holds defaults shared by every request.

    A transport may be shared by many threads. Request-level values
    always win over the defaults held here.

    Example:
        with Transport(connect_timeout=5) as transport:
            transport.set_header("User-Agent", "JC Denton")
            engine = ExecutionEngine(transport)
            envelope = engine.execute(RequestSpec(Method.GET, "http://www.unatco.org/"))
    """

    def __init__(
        self,
        *,
        proxy: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        headers: Optional[dict[str, str]] = None,
        cookie_jar: Optional[CookieJar] = None,
        listener: Optional[ConnectionListener] = None,
        response_handler: Optional[ResponseHandler] = None,
        adapter: Optional[BaseAdapter] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            proxy: Default proxy URL (http:// or https://)
            connect_timeout: Default connect timeout in seconds
            read_timeout: Default read timeout in seconds
            max_redirects: Redirect hop limit (default: HTTP_MAX_REDIRECTS or 20)
            headers: Extra default headers, layered over the built-in set
            cookie_jar: Shared cookie jar (a new one if omitted)
            listener: Hook called around every network exchange
            response_handler: Hook that may replace response classification
            adapter: requests transport adapter (an HTTPAdapter if omitted)
        """
        self._adapter = adapter or HTTPAdapter()
        self.cookie_jar = cookie_jar if cookie_jar is not None else CookieJar()
        self.auth_manager = AuthenticationManager()
        self.listener = listener
        self.response_handler = response_handler

        self.proxy = proxy
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_redirects = max_redirects if max_redirects is not None else default_max_redirects()
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self._setup_headers()
        if headers:
            self.headers.update(headers)

    @classmethod
    def from_config(cls, config: NetworkConfig, **kwargs) -> Transport:
        """Build a transport from a :class:`NetworkConfig`."""
        transport = cls(
            proxy=config.proxy,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_redirects=config.max_redirects,
            headers=config.headers,
            **kwargs,
        )
        if config.user_agent:
            transport.set_header("User-Agent", config.user_agent)
        return transport

    def _setup_headers(self) -> None:
        self.headers["User-Agent"] = AGENT_DEFAULT
        self.headers["Accept"] = DEFAULT_ACCEPT
        self.headers["Accept-Encoding"] = "gzip, deflate"
        self.headers["Accept-Charset"] = "UTF-8"

    def reset(self) -> None:
        """Restore timeouts, max redirects, proxy and the default headers."""
        self.connect_timeout = None
        self.read_timeout = None
        self.max_redirects = default_max_redirects()
        self.proxy = None
        self.headers.clear()
        self._setup_headers()

    def set_header(self, name: str, value: Optional[str]) -> None:
        """Set a default header, or remove it when ``value`` is None."""
        if value is None:
            self.headers.pop(name, None)
        else:
            self.headers[name] = value

    def open_connection(self, url: str, proxy: Optional[str] = None) -> Connection:
        """Open an unsent connection through ``proxy``, else the default proxy."""
        return Connection(self._adapter, url, proxy or self.proxy)

    def close(self) -> None:
        self._adapter.close()

    def __enter__(self) -> Transport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
