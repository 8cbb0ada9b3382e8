"""Request execution: headers, cookies, body, internal handlers, classification."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from requests.structures import CaseInsensitiveDict

from ..auth.manager import parse_challenge
from ..cookies import serialize_cookies
from ..exceptions import ConnectionError, UnsupportedEncodingError
from .handlers import HandlerRegistry
from .request import BODY_METHODS, CookiePolicy, Method, RedirectContinuation, RequestSpec
from .response import (
    BODY_READ_ERRORS,
    ResponseEnvelope,
    ResponseKind,
    ResponseStream,
    charset_from_content_type,
    open_body_stream,
)
from .transport import Connection, Transport

if TYPE_CHECKING:
    from ..auth import AuthenticationProvider

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class ExecutionEngine:
    """
    Executes request specs against a transport.

    One ``execute`` call is one logical request: it may be resent
    internally (redirects, custom handlers) but only the terminal response
    reaches the caller. Intermediate responses are closed before the
    resend. Calls block; concurrency comes from callers sharing an engine.

    Example:
        engine = ExecutionEngine(Transport(connect_timeout=10))
        spec = RequestSpec(Method.GET, "https://example.com/", follow_redirects=True)
        with engine.execute(spec) as envelope:
            print(envelope.status, envelope.text())
    """

    def __init__(self, transport: Transport, handlers: Optional[HandlerRegistry] = None) -> None:
        """
        Args:
            transport: Connection opener and shared defaults
            handlers: Internal handler registry (built-in redirects if omitted)
        """
        self.transport = transport
        self.handlers = handlers if handlers is not None else HandlerRegistry.default()

    def execute(self, spec: RequestSpec) -> ResponseEnvelope:
        """
        Execute ``spec`` and every internal resend it triggers.

        Args:
            spec: The request to execute

        Returns:
            The classified terminal response

        Raises:
            ConnectionError: On transport failure
            RedirectLoopError: If redirects exceed ``transport.max_redirects``
            ProtocolError: If a followed redirect has no Location
        """
        request = spec
        while True:
            if isinstance(request, RedirectContinuation):
                request.advance(self.transport.max_redirects)

            connection, stream = self._exchange(request)
            follow = self._dispatch(request, connection, stream)
            if follow is None:
                break
            request = follow

        return self._finish(request, connection, stream)

    def execute_authenticated(
        self,
        spec: RequestSpec,
        provider: Optional[AuthenticationProvider] = None,
        retry_limit: int = 1,
        realm: Optional[str] = None,
        scheme: Optional[str] = None,
    ) -> ResponseEnvelope:
        """
        Execute ``spec`` and answer authentication challenges.

        The provider comes from the argument, else from the transport's
        authentication manager by host, port, ``realm`` and ``scheme``. When
        nothing matches up front, the realm and scheme announced by a 401's
        WWW-Authenticate header are used for a second lookup. Without a
        provider the 401 comes back as an AUTH_CHALLENGE envelope.

        Args:
            spec: The request to execute
            provider: Authentication provider override
            retry_limit: Extra attempts after the first challenge is answered
            realm: Realm to look the provider up by before the first attempt
            scheme: Authentication scheme to look the provider up by

        Returns:
            The terminal response, possibly still an AUTH_CHALLENGE
        """
        if retry_limit < 0:
            raise ValueError("retry_limit must not be negative")

        manager = self.transport.auth_manager
        if provider is None:
            provider = manager.get(spec.url, realm, scheme)
        if provider is not None:
            provider.setup(spec)

        envelope = self.execute(spec)
        if envelope.kind is ResponseKind.AUTH_CHALLENGE and provider is None:
            challenge_scheme, challenge_realm = parse_challenge(envelope.challenge)
            provider = manager.get(spec.url, challenge_realm, challenge_scheme)
            if provider is not None:
                logger.debug(f"Found authentication for realm {challenge_realm!r} of {spec!r}")
                provider.setup(spec)

        if provider is None:
            logger.warning(f"No authentication found for {spec!r}")
            return envelope

        if envelope.kind is ResponseKind.AUTH_CHALLENGE and provider.supports_challenge:
            for _ in range(retry_limit + 1):
                envelope = provider.authenticate(self, spec, envelope)
                if envelope.kind is not ResponseKind.AUTH_CHALLENGE:
                    break
                provider.reset()
        return envelope

    def _exchange(self, spec: RequestSpec) -> tuple[Connection, ResponseStream]:
        transport = self.transport
        connection = transport.open_connection(spec.url, spec.proxy)
        connection.method = spec.method.value
        connection.connect_timeout = (
            spec.connect_timeout if spec.connect_timeout is not None else transport.connect_timeout
        )
        connection.read_timeout = (
            spec.read_timeout if spec.read_timeout is not None else transport.read_timeout
        )
        logger.debug(f"Request {spec.method.value} {spec.url}")

        # Request-level headers override transport defaults
        headers = CaseInsensitiveDict(transport.headers)
        headers.update(spec.headers)
        if not spec.cache:
            headers.setdefault("Cache-Control", "no-cache")
            headers.setdefault("Pragma", "no-cache")
        for name, value in headers.items():
            logger.debug(f"Header {name}: {value}")
            connection.set_header(name, value)

        self._attach_cookies(spec, connection)

        if transport.listener is not None:
            transport.listener.on_request(connection, spec)

        if spec.method in BODY_METHODS and spec.body is not None:
            if connection.get_header("Content-Type") is None:
                connection.set_header("Content-Type", FORM_CONTENT_TYPE)
            logger.debug(f"Writing payload: {len(spec.body)} bytes")
            connection.set_header("Content-Length", str(len(spec.body)))
            connection.body = spec.body

        connection.connect()
        logger.debug(f"Response {connection.status_code} {connection.reason}")

        return connection, self._open_stream(spec, connection)

    def _open_stream(self, spec: RequestSpec, connection: Connection) -> ResponseStream:
        if spec.method is Method.HEAD:
            return ResponseStream()

        status = connection.status_code
        salvage = status >= 400 and status not in spec.ignored_codes
        try:
            return open_body_stream(connection.raw_stream(), connection.content_encoding, salvage)
        except UnsupportedEncodingError as e:
            logger.warning(f"{e} from {spec.url}, body dropped")
            return ResponseStream()
        except BODY_READ_ERRORS as e:
            connection.disconnect()
            raise ConnectionError(f"Failed reading body of {spec.url}: {e}", url=spec.url) from e

    def _attach_cookies(self, spec: RequestSpec, connection: Connection) -> None:
        policy = spec.cookie_policy
        if policy is CookiePolicy.USE_EXTERNAL_MAP:
            cookies = spec.cookie_store.applicable(spec.url)
        elif policy is CookiePolicy.USE_EXPLICIT_LIST:
            cookies = list(spec.cookies)
        elif policy is CookiePolicy.USE_JAR:
            cookies = self.transport.cookie_jar.applicable(spec.url)
        else:
            return

        value = serialize_cookies(cookies, connection.get_header("Cookie"))
        if value:
            connection.set_header("Cookie", value)

    def _store_cookies(self, spec: RequestSpec, connection: Connection) -> None:
        headers = connection.header_values("Set-Cookie")
        if not headers:
            return
        if spec.cookie_store is not None:
            spec.cookie_store.store_response(connection.url, headers)
        elif spec.store_cookies:
            self.transport.cookie_jar.store_response(connection.url, headers)

    def _dispatch(
        self,
        spec: RequestSpec,
        connection: Connection,
        stream: ResponseStream,
    ) -> Optional[RequestSpec]:
        status = connection.status_code
        if status in spec.ignored_codes:
            return None
        handler = self.handlers.get(status)
        if handler is None:
            return None

        try:
            follow = handler.get_request(status, spec, connection)
        except Exception:
            self._discard(connection, stream)
            raise

        if follow is not None:
            # Cookies set on the hop are needed by the next request
            self._store_cookies(spec, connection)
            self._discard(connection, stream)
        return follow

    @staticmethod
    def _discard(connection: Connection, stream: ResponseStream) -> None:
        connection.disconnect()
        stream._release()

    def _finish(
        self,
        spec: RequestSpec,
        connection: Connection,
        stream: ResponseStream,
    ) -> ResponseEnvelope:
        transport = self.transport
        self._store_cookies(spec, connection)

        if transport.listener is not None:
            transport.listener.on_finish(connection)

        status = connection.status_code
        charset = charset_from_content_type(connection.content_type)

        envelope = None
        if transport.response_handler is not None:
            envelope = transport.response_handler.get_response(connection, stream, status, charset)
        if envelope is None:
            envelope = ResponseEnvelope.classify(connection, stream, status, charset)

        if spec.close_after_execute:
            envelope.close()
        return envelope
