"""Thread-safe, domain-indexed cookie storage."""

from __future__ import annotations

import ipaddress
import logging
import threading
from collections.abc import Iterable, Iterator
from typing import Optional
from urllib.parse import urlparse

from ..exceptions import ProtocolError
from .cookie import Cookie, _now, matches_path

logger = logging.getLogger(__name__)

HTTP_SCHEMES = frozenset({"http", "https"})


def host_domains(host: str) -> list[str]:
    """
    Candidate cookie domains for a request host, most specific first.

    Suffixes are taken on dot boundaries and stop before the top-level
    label, so ``a.b.example.com`` yields ``a.b.example.com``,
    ``b.example.com`` and ``example.com``. IP literals and single-label
    hosts only match themselves.

    Args:
        host: Request host, without scheme or port

    Returns:
        List of candidate domains
    """
    host = host.lower().rstrip(".")
    if not host:
        return []
    try:
        ipaddress.ip_address(host.strip("[]"))
        return [host]
    except ValueError:
        pass

    labels = host.split(".")
    return [".".join(labels[i:]) for i in range(max(len(labels) - 1, 1))]


def sort_by_path(cookies: list[Cookie]) -> list[Cookie]:
    """
    Order cookies for a Cookie request header.

    Only cookies sharing a name are reordered, longest path first, and they
    keep the positions their group already occupied. Cookies with distinct
    names stay where they are.
    """
    positions: dict[str, list[int]] = {}
    for index, cookie in enumerate(cookies):
        positions.setdefault(cookie.name, []).append(index)

    ordered = list(cookies)
    for slots in positions.values():
        if len(slots) < 2:
            continue
        group = sorted((cookies[i] for i in slots), key=lambda c: len(c.path), reverse=True)
        for slot, cookie in zip(slots, group):
            ordered[slot] = cookie
    return ordered


def serialize_cookies(cookies: Iterable[Cookie], existing: Optional[str] = None) -> Optional[str]:
    """
    Build a Cookie header value, appending to ``existing`` when present.

    Returns:
        ``n1=v1; n2=v2`` or ``existing`` unchanged if there is nothing to add
    """
    pairs = "; ".join(cookie.cookie_string for cookie in cookies)
    if not pairs:
        return existing
    if existing:
        return f"{existing.rstrip('; ')}; {pairs}"
    return pairs


class CookieJar:
    """
    Cookie store keyed by domain.

    All reads and writes go through a single jar-wide lock, so one jar can
    be shared by concurrent requests. Reading the applicable cookies for a
    URL also purges the expired ones it walks over.

    An emptied domain bucket keeps its key; only :meth:`clear` drops keys.

    Example:
        jar = CookieJar()
        jar.store_response("https://example.com/login", ["sid=abc; Path=/"])
        jar.header_value("https://example.com/account")  # "sid=abc"
    """

    def __init__(self) -> None:
        self._buckets: dict[str, list[Cookie]] = {}
        self._domains: set[str] = set()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._buckets.values())

    def __iter__(self) -> Iterator[Cookie]:
        with self._lock:
            snapshot = [cookie for bucket in self._buckets.values() for cookie in bucket]
        return iter(snapshot)

    def __contains__(self, cookie: object) -> bool:
        if not isinstance(cookie, Cookie):
            return False
        with self._lock:
            return cookie in self._buckets.get(cookie.domain, ())

    @property
    def domains(self) -> frozenset[str]:
        """Domains that have (or had) a bucket in this jar."""
        with self._lock:
            return frozenset(self._domains)

    def cookies_for_domain(self, domain: str) -> list[Cookie]:
        with self._lock:
            return list(self._buckets.get(domain.lower(), ()))

    def domains_for_host(self, host: str) -> list[str]:
        """Jar domains that apply to ``host``, most specific first."""
        with self._lock:
            return [domain for domain in host_domains(host) if domain in self._domains]

    def get(self, domain: str, name: str) -> Optional[Cookie]:
        """First cookie named ``name`` in the ``domain`` bucket."""
        with self._lock:
            for cookie in self._buckets.get(domain.lower(), ()):
                if cookie.name == name:
                    return cookie
        return None

    def put(self, cookie: Cookie, overwrite: bool = True) -> None:
        """
        Store a cookie.

        Args:
            cookie: Cookie to store
            overwrite: Replace a cookie occupying the same (domain, name, path)
                slot instead of appending alongside it
        """
        with self._lock:
            bucket = self._buckets.get(cookie.domain)
            if bucket is None:
                bucket = []
                self._buckets[cookie.domain] = bucket
                self._domains.add(cookie.domain)
            if overwrite:
                for index, existing in enumerate(bucket):
                    if existing == cookie:
                        del bucket[index]
                        break
            bucket.append(cookie)
        logger.debug(f"Stored cookie [{cookie}]")

    def put_all(self, cookies: Iterable[Cookie], overwrite: bool = True) -> None:
        for cookie in cookies:
            self.put(cookie, overwrite)

    def remove(self, domain: str, name: str) -> bool:
        """Remove the first cookie named ``name`` from ``domain``."""
        with self._lock:
            bucket = self._buckets.get(domain.lower())
            if not bucket:
                return False
            for index, cookie in enumerate(bucket):
                if cookie.name == name:
                    del bucket[index]
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._domains.clear()

    def purge_expired(self, session: bool = False, now: Optional[int] = None) -> bool:
        """
        Drop expired cookies, and session cookies too if ``session`` is set.

        Returns:
            True if anything was removed
        """
        if now is None:
            now = _now()
        modified = False
        with self._lock:
            for bucket in self._buckets.values():
                kept = [c for c in bucket if not ((session and c.is_session) or c.is_expired(now))]
                if len(kept) != len(bucket):
                    modified = True
                    bucket[:] = kept
        return modified

    def applicable(self, url: str, now: Optional[int] = None) -> list[Cookie]:
        """
        Cookies to send with a request to ``url``, in header order.

        Expired cookies encountered along the way are removed from the jar.
        Secure cookies require https. HttpOnly cookies are only sent on
        http and https requests.

        Args:
            url: Request URL
            now: Evaluation time override (epoch seconds)

        Returns:
            Ordered list of applicable cookies
        """
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()
        path = parsed.path or "/"
        if now is None:
            now = _now()

        selected: list[Cookie] = []
        with self._lock:
            for domain in self.domains_for_host(parsed.hostname or ""):
                bucket = self._buckets[domain]
                kept = []
                for cookie in bucket:
                    if cookie.is_expired(now):
                        logger.debug(f"Removed expired cookie [{cookie}]")
                        continue
                    kept.append(cookie)
                    if cookie.secure and scheme != "https":
                        continue
                    if cookie.http_only and scheme not in HTTP_SCHEMES:
                        continue
                    if not matches_path(path, cookie.path):
                        continue
                    selected.append(cookie)
                bucket[:] = kept

        return sort_by_path(selected)

    def header_value(self, url: str, existing: Optional[str] = None) -> Optional[str]:
        """Cookie header value for ``url``, appended to ``existing`` if given."""
        return serialize_cookies(self.applicable(url), existing)

    def store_response(self, url: str, headers: Iterable[str]) -> list[Cookie]:
        """
        Parse Set-Cookie header values and store them, replacing same-slot cookies.

        A malformed header is logged and skipped; the rest are still stored.

        Returns:
            The cookies that were stored
        """
        stored = []
        for header in headers:
            try:
                cookie = Cookie.parse(url, header)
            except ProtocolError as e:
                logger.warning(f"Skipping Set-Cookie from {url}: {e}")
                continue
            self.put(cookie, overwrite=True)
            stored.append(cookie)
        return stored
