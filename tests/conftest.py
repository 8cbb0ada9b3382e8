"""Shared fixtures: a requests adapter that never touches the network."""

import io

import pytest
import requests
from requests.adapters import HTTPAdapter
from urllib3 import HTTPResponse
from urllib3._collections import HTTPHeaderDict

from scrapenet import CookieJar, ExecutionEngine, Transport


class StubAdapter(HTTPAdapter):
    """
    Answers requests from canned responses keyed by (method, url).

    Several responses queued for one key are served in order; the last one
    keeps being served once the others are used up. Unknown keys fail like
    an unreachable host.
    """

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.sent = []
        self.send_kwargs = []

    def add(self, method, url, status=200, headers=None, body=b"", reason="OK", cookies=()):
        header_dict = HTTPHeaderDict()
        for name, value in (headers or {}).items():
            header_dict.add(name, value)
        for cookie in cookies:
            header_dict.add("Set-Cookie", cookie)
        self.routes.setdefault((method, url), []).append((status, header_dict, body, reason))
        return self

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        self.send_kwargs.append({"stream": stream, "timeout": timeout, "proxies": proxies})

        queue = self.routes.get((request.method, request.url))
        if not queue:
            raise requests.ConnectionError(f"No route to {request.method} {request.url}")
        status, headers, body, reason = queue.pop(0) if len(queue) > 1 else queue[0]

        raw = HTTPResponse(
            body=io.BytesIO(body),
            headers=headers.copy(),
            status=status,
            reason=reason,
            preload_content=False,
            decode_content=False,
        )
        return self.build_response(request, raw)


@pytest.fixture
def adapter():
    """Stub adapter with no routes."""
    return StubAdapter()


@pytest.fixture
def jar():
    """Empty cookie jar."""
    return CookieJar()


@pytest.fixture
def transport(adapter, jar):
    """Transport wired to the stub adapter."""
    return Transport(adapter=adapter, cookie_jar=jar, max_redirects=20)


@pytest.fixture
def engine(transport):
    """Engine with the built-in handlers."""
    return ExecutionEngine(transport)
