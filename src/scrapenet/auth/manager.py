"""Authentication providers keyed by host, realm, scheme and port."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from .protocols import AuthenticationProvider

DEFAULT_PORTS = {"http": 80, "https": 443}

_REALM_PATTERN = re.compile(r'realm\s*=\s*(?:"([^"]*)"|([^\s,]+))', re.IGNORECASE)


def parse_challenge(challenge: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Split a WWW-Authenticate value into its scheme and realm.

    ``Digest realm="vault", nonce="..."`` gives ``("Digest", "vault")``.
    Missing parts come back as None.
    """
    if not challenge or not challenge.strip():
        return None, None
    scheme = challenge.strip().split(None, 1)[0]
    if "=" in scheme:
        # Parameters without a leading scheme token
        scheme = None
    match = _REALM_PATTERN.search(challenge)
    realm = None
    if match:
        realm = match.group(1) if match.group(1) is not None else match.group(2)
    return scheme, realm


def url_port(url: str) -> Optional[int]:
    """Explicit port of ``url``, else the default port of its scheme."""
    parsed = urlsplit(url)
    return parsed.port or DEFAULT_PORTS.get(parsed.scheme.lower())


@dataclass(frozen=True)
class AuthScope:
    """
    Where a provider applies.

    ``host`` is matched case-insensitively. ``realm``, ``scheme`` (the
    authentication scheme, such as ``Basic``) and ``port`` match anything
    when left as None.
    """

    host: str
    realm: Optional[str] = None
    scheme: Optional[str] = None
    port: Optional[int] = None

    def matches(
        self,
        host: str,
        realm: Optional[str] = None,
        scheme: Optional[str] = None,
        port: Optional[int] = None,
    ) -> bool:
        if self.host.lower() != host.lower():
            return False
        if self.realm is not None and self.realm != realm:
            return False
        if self.scheme is not None and (scheme is None or self.scheme.lower() != scheme.lower()):
            return False
        return self.port is None or self.port == port


class AuthenticationManager:
    """
    Thread-safe registry of authentication providers.

    Example:
        transport.auth_manager.add(AuthScope("api.example.com", realm="admin"), BasicAuthentication("jc", "bionicman"))
        envelope = engine.execute_authenticated(RequestSpec(Method.GET, "https://api.example.com/me"))
    """

    def __init__(self) -> None:
        self._providers: dict[AuthScope, AuthenticationProvider] = {}
        self.lock = threading.Lock()

    def add(self, scope: AuthScope, provider: Optional[AuthenticationProvider]) -> None:
        """Register ``provider`` for ``scope``, or remove the scope when None."""
        with self.lock:
            if provider is None:
                self._providers.pop(scope, None)
            else:
                self._providers[scope] = provider

    def remove(self, scope: AuthScope) -> Optional[AuthenticationProvider]:
        with self.lock:
            return self._providers.pop(scope, None)

    def get(
        self,
        url: str,
        realm: Optional[str] = None,
        scheme: Optional[str] = None,
    ) -> Optional[AuthenticationProvider]:
        """
        First provider whose scope matches ``url``.

        Args:
            url: Request URL, supplying host and port
            realm: Realm announced by the server, if known
            scheme: Authentication scheme announced by the server, if known
        """
        host = urlsplit(url).hostname
        if not host:
            return None
        port = url_port(url)
        with self.lock:
            for scope, provider in self._providers.items():
                if scope.matches(host, realm, scheme, port):
                    return provider
        return None

    def clear(self) -> None:
        with self.lock:
            self._providers.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._providers)
