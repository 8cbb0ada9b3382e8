"""Protocol definitions for the hooks around request execution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from .request import RequestSpec
    from .response import ResponseEnvelope, ResponseStream
    from .transport import Connection


class ConnectionListener(Protocol):
    """
    Observer called around every network exchange, redirect hops included.

    ``on_request`` sees the fully prepared connection (merged headers and
    cookies) before anything is sent. ``on_finish`` runs once the terminal
    response has been read and its cookies stored.
    """

    def on_request(self, connection: Connection, spec: RequestSpec) -> None:
        ...

    def on_finish(self, connection: Connection) -> None:
        ...


class ResponseHandler(Protocol):
    """
    Replaces the built-in response classification.

    Returning None falls back to the built-in classification.
    """

    def get_response(
        self,
        connection: Connection,
        stream: ResponseStream,
        status: int,
        charset: Optional[str],
    ) -> Optional[ResponseEnvelope]:
        ...


class InternalHandler(Protocol):
    """
    Status-code handler that may turn a response into a new request.

    Returning None hands the response back to the caller unchanged.
    Returning a spec makes the engine discard the current response and
    execute the returned spec instead.
    """

    def get_request(
        self,
        status: int,
        spec: RequestSpec,
        connection: Connection,
    ) -> Optional[RequestSpec]:
        ...
