"""Exception hierarchy for scrapenet."""

from __future__ import annotations


class NetworkError(Exception):
    """Base class for every error raised by scrapenet."""


class ConnectionError(NetworkError):
    """
    Transport-level failure (DNS, TCP, TLS, timeouts).

    Never retried internally. The underlying requests/urllib3 exception is
    chained as ``__cause__``.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ProtocolError(NetworkError, ValueError):
    """Malformed protocol data, such as a Set-Cookie without a name=value pair."""


class RedirectLoopError(NetworkError):
    """A redirect chain exceeded the transport's maximum number of hops."""

    def __init__(self, url: str, hops: int) -> None:
        super().__init__(f"Request was redirected too many times: {hops} ({url})")
        self.url = url
        self.hops = hops


class UnsupportedEncodingError(NetworkError):
    """Response uses a Content-Encoding that cannot be decoded."""

    def __init__(self, encoding: str) -> None:
        super().__init__(f"Unsupported content encoding: {encoding}")
        self.encoding = encoding
