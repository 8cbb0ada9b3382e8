"""Request specs, transport and the execution engine."""

from .request import (
    BODY_METHODS,
    UNSAFE_METHODS,
    CookiePolicy,
    Method,
    RedirectContinuation,
    RequestSpec,
    encode_pairs,
    parse_query,
    set_query,
)
from .response import ResponseEnvelope, ResponseKind, ResponseStream, charset_from_content_type
from .protocols import ConnectionListener, InternalHandler, ResponseHandler
from .handlers import HandlerRegistry, RedirectHandler
from .transport import AGENT_DEFAULT, Connection, Transport
from .engine import ExecutionEngine

__all__ = [
    "AGENT_DEFAULT",
    "BODY_METHODS",
    "Connection",
    "ConnectionListener",
    "CookiePolicy",
    "ExecutionEngine",
    "HandlerRegistry",
    "InternalHandler",
    "Method",
    "RedirectContinuation",
    "RedirectHandler",
    "RequestSpec",
    "ResponseEnvelope",
    "ResponseHandler",
    "ResponseKind",
    "ResponseStream",
    "Transport",
    "UNSAFE_METHODS",
    "charset_from_content_type",
    "encode_pairs",
    "parse_query",
    "set_query",
]
