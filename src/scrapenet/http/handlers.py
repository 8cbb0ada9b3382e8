"""Status-code keyed internal handlers."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional
from urllib.parse import urljoin

from ..exceptions import ProtocolError
from .protocols import InternalHandler
from .request import RedirectContinuation, RequestSpec

if TYPE_CHECKING:
    from .transport import Connection

logger = logging.getLogger(__name__)


class RedirectHandler:
    """
    Follows 301 always, and 302 only when the request sets ``follow_redirects``.

    Relative Location values are resolved against the current URL.
    """

    def get_request(
        self,
        status: int,
        spec: RequestSpec,
        connection: Connection,
    ) -> Optional[RequestSpec]:
        if status == 302 and not spec.follow_redirects:
            return None

        location = connection.header("Location")
        if not location:
            raise ProtocolError(f"{status} response from {spec.url} has no Location header")
        target = urljoin(spec.url, location)
        logger.debug(f"Internally handled redirect {status}: {spec.url} -> {target}")

        if isinstance(spec, RedirectContinuation):
            return spec.redirect_to(target)
        return RedirectContinuation(spec, target)


class HandlerRegistry:
    """
    Maps status codes to internal handlers.

    Each engine owns its registry, so registering a handler never affects
    other engines.

    Example:
        registry = HandlerRegistry.default()
        registry.register(503, RetryLaterHandler())
        registry.register(302, None)  # stop following 302 entirely
        engine = ExecutionEngine(transport, handlers=registry)
    """

    def __init__(self, handlers: Optional[dict[int, InternalHandler]] = None) -> None:
        self._handlers: dict[int, InternalHandler] = dict(handlers or {})
        self._lock = threading.Lock()

    @classmethod
    def default(cls) -> HandlerRegistry:
        """Registry with the built-in 301/302 redirect handling."""
        redirect = RedirectHandler()
        return cls({301: redirect, 302: redirect})

    def register(self, status: int, handler: Optional[InternalHandler]) -> None:
        """Register ``handler`` for ``status``, or unregister when None."""
        with self._lock:
            if handler is None:
                self._handlers.pop(status, None)
            else:
                self._handlers[status] = handler

    def get(self, status: int) -> Optional[InternalHandler]:
        with self._lock:
            return self._handlers.get(status)

    def __contains__(self, status: object) -> bool:
        with self._lock:
            return status in self._handlers

    def codes(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._handlers)
