"""HTTP Basic authentication."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING

from requests.structures import CaseInsensitiveDict

from ..http.request import RequestSpec

if TYPE_CHECKING:
    from ..http.engine import ExecutionEngine
    from ..http.response import ResponseEnvelope

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"


class BasicAuthentication:
    """
    Sends ``Authorization: Basic`` credentials.

    When ``preemptive`` is set the header is added before the first
    attempt, otherwise only in answer to a challenge.
    """

    supports_challenge = True

    def __init__(self, username: str, password: str, preemptive: bool = True) -> None:
        self.username = username
        self.password = password
        self.preemptive = preemptive

    @property
    def credentials(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"

    def setup(self, spec: RequestSpec) -> None:
        if self.preemptive:
            spec.header(AUTHORIZATION, self.credentials)

    def authenticate(
        self,
        engine: ExecutionEngine,
        spec: RequestSpec,
        envelope: ResponseEnvelope,
    ) -> ResponseEnvelope:
        logger.info(f"Answering challenge from {envelope.url}: {envelope.challenge}")
        envelope.close()

        retry = RequestSpec.derive(spec)
        # Own copy so the caller's spec is left untouched
        retry.headers = CaseInsensitiveDict(spec.headers)
        retry.header(AUTHORIZATION, self.credentials)
        return engine.execute(retry)

    def reset(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"BasicAuthentication({self.username!r})"
