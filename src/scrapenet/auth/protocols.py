"""Protocol definition for authentication providers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..http.engine import ExecutionEngine
    from ..http.request import RequestSpec
    from ..http.response import ResponseEnvelope


class AuthenticationProvider(Protocol):
    """
    Answers authentication challenges for an :class:`ExecutionEngine`.

    ``setup`` runs before the first attempt and may add credentials
    preemptively. ``authenticate`` receives the AUTH_CHALLENGE envelope,
    must close it, and returns the envelope of a new attempt. ``reset``
    clears per-attempt state after a failed attempt.
    """

    supports_challenge: bool

    def setup(self, spec: RequestSpec) -> None:
        ...

    def authenticate(
        self,
        engine: ExecutionEngine,
        spec: RequestSpec,
        envelope: ResponseEnvelope,
    ) -> ResponseEnvelope:
        ...

    def reset(self) -> None:
        ...
