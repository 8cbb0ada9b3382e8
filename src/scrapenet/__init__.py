"""
scrapenet - Blocking HTTP client engine for scraping clients.

Usage:
    from scrapenet import ExecutionEngine, Method, RequestSpec, ResponseKind, Transport

    transport = Transport(connect_timeout=10, read_timeout=30)
    engine = ExecutionEngine(transport)

    spec = RequestSpec(Method.GET, "https://example.com/", follow_redirects=True)
    with engine.execute(spec) as envelope:
        if envelope.kind is ResponseKind.SUCCESS:
            print(envelope.text())
"""

__version__ = "1.0.0"

from .auth import AuthenticationManager, AuthenticationProvider, AuthScope, BasicAuthentication
from .cookies import Cookie, CookieJar
from .exceptions import (
    ConnectionError,
    NetworkError,
    ProtocolError,
    RedirectLoopError,
    UnsupportedEncodingError,
)
from .http import (
    Connection,
    ConnectionListener,
    CookiePolicy,
    ExecutionEngine,
    HandlerRegistry,
    InternalHandler,
    Method,
    RedirectContinuation,
    RequestSpec,
    ResponseEnvelope,
    ResponseHandler,
    ResponseKind,
    ResponseStream,
    Transport,
)
from .logging_config import setup_logging
from .models.config import NetworkConfig

__all__ = [
    "__version__",
    # Engine
    "ExecutionEngine",
    "Transport",
    "Connection",
    "HandlerRegistry",
    # Requests
    "Method",
    "RequestSpec",
    "RedirectContinuation",
    "CookiePolicy",
    # Responses
    "ResponseEnvelope",
    "ResponseKind",
    "ResponseStream",
    # Hooks
    "ConnectionListener",
    "InternalHandler",
    "ResponseHandler",
    # Cookies
    "Cookie",
    "CookieJar",
    # Authentication
    "AuthScope",
    "AuthenticationManager",
    "AuthenticationProvider",
    "BasicAuthentication",
    # Config
    "NetworkConfig",
    "setup_logging",
    # Errors
    "NetworkError",
    "ConnectionError",
    "ProtocolError",
    "RedirectLoopError",
    "UnsupportedEncodingError",
]
