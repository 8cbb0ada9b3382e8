"""Cookie value object and Set-Cookie parsing."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from ..exceptions import ProtocolError

logger = logging.getLogger(__name__)

# English names, independent of the process locale
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# "Wed, 09-Jun-2021 10:18:14 GMT" or "Wed, 09 Jun 2021 10:18:14 GMT"
EXPIRES_PATTERN = re.compile(
    r"^(?P<day_name>[A-Za-z]{3}), (?P<day>\d{2})(?P<sep>[- ])(?P<month>[A-Za-z]{3})(?P=sep)"
    r"(?P<year>\d{4}) (?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2}) GMT$"
)

SESSION = -1


def _now() -> int:
    return int(time.time())


@dataclass(eq=False)
class Cookie:
    """
    A single HTTP cookie.

    Identity is the ``(domain, name, path)`` triple: two cookies with the same
    triple occupy the same slot in a :class:`CookieJar`.

    Attributes:
        name: Cookie name
        value: Cookie value, sent verbatim (never URL-encoded)
        domain: Domain the cookie belongs to, without a leading dot
        path: Path prefix the cookie applies to
        max_age: Seconds from creation until expiry. ``-1`` marks a session
            cookie, ``0`` an already-expired one
        created: Creation time in epoch seconds
        secure: Only sent over https
        http_only: Only sent over http(s) requests
    """

    name: str
    value: str
    domain: str
    path: str = "/"
    max_age: int = SESSION
    created: int = field(default_factory=_now)
    secure: bool = False
    http_only: bool = False

    def __post_init__(self) -> None:
        self.domain = _normalize_domain(self.domain or "")
        if not self.domain:
            raise ValueError("Cookie domain may not be empty")

    @property
    def key(self) -> tuple[str, str, str]:
        """Slot identity used for replacement."""
        return (self.domain, self.name, self.path)

    @property
    def is_session(self) -> bool:
        return self.max_age == SESSION

    def set_value(self, value: str) -> None:
        self.value = value

    def is_expired(self, now: Optional[int] = None) -> bool:
        """
        Check whether the cookie has expired at ``now`` (epoch seconds).

        Session cookies never expire by time; they are only dropped by
        ``CookieJar.purge_expired(session=True)``.
        """
        if self.is_session:
            return False
        if now is None:
            now = _now()
        return (now - self.created) >= self.max_age

    @property
    def cookie_string(self) -> str:
        """The ``name=value`` pair as it appears in a Cookie request header."""
        return f"{self.name}={self.value}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cookie):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.name} {self.domain}"

    @classmethod
    def parse(cls, url: str, header: str, now: Optional[int] = None) -> Cookie:
        """
        Parse one Set-Cookie header value received for ``url``.

        Attribute names are matched case-insensitively. ``Max-Age`` takes
        precedence over ``Expires`` regardless of order. An unparseable
        ``Expires`` marks the cookie as already expired instead of failing.

        Args:
            url: URL of the request that received the header
            header: The Set-Cookie header value
            now: Creation time override (epoch seconds)

        Returns:
            Parsed cookie with domain and path defaulted from ``url``

        Raises:
            ProtocolError: If the first token is not a ``name=value`` pair
        """
        created = _now() if now is None else now
        tokens = header.split(";")

        first = tokens[0].strip()
        if "=" not in first:
            raise ProtocolError(f"Invalid name value pair in cookie: {header!r}")
        name, value = first.split("=", 1)
        name = name.strip()
        if not name:
            raise ProtocolError(f"Cookie has an empty name: {header!r}")

        domain: Optional[str] = None
        path: Optional[str] = None
        secure = False
        http_only = False
        max_age: Optional[int] = None
        expires: Optional[str] = None
        expires_seen = False

        for token in tokens[1:]:
            token = token.strip()
            if not token:
                continue
            if "=" in token:
                attr, attr_value = token.split("=", 1)
                attr_value = attr_value.strip() or None
            else:
                attr, attr_value = token, None
            attr = attr.strip().lower()

            if attr == "domain":
                domain = attr_value
            elif attr == "path":
                path = attr_value
            elif attr == "secure":
                secure = True
            elif attr == "httponly":
                http_only = True
            elif attr == "expires":
                expires_seen = True
                expires = attr_value
            elif attr == "max-age":
                if attr_value is None:
                    continue
                try:
                    max_age = int(attr_value)
                except ValueError:
                    logger.debug(f"Ignoring invalid Max-Age {attr_value!r} in cookie {name}")

        if max_age is None:
            max_age = _expires_to_max_age(expires, created) if expires_seen else SESSION

        parsed = urlparse(url)
        if not domain or not _normalize_domain(domain):
            domain = parsed.hostname
            if not domain:
                raise ProtocolError(f"Cannot default cookie domain, no host in {url!r}")
        if not path:
            path = default_path(parsed.path)

        return cls(
            name=name,
            value=value.strip(),
            domain=domain,
            path=path,
            max_age=max_age,
            created=created,
            secure=secure,
            http_only=http_only,
        )


def _normalize_domain(domain: str) -> str:
    return domain.strip().lstrip(".").lower()


def parse_expires(value: str) -> Optional[int]:
    """
    Parse an Expires date into epoch seconds.

    Accepts the dashed Netscape form and the RFC 1123 form, both in GMT
    with English day and month names. Returns None for anything else.
    """
    match = EXPIRES_PATTERN.match(value.strip())
    if match is None:
        return None
    if match.group("day_name").title() not in DAY_NAMES:
        return None
    month = match.group("month").title()
    if month not in MONTH_NAMES:
        return None
    try:
        moment = datetime(
            int(match.group("year")),
            MONTH_NAMES.index(month) + 1,
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None
    return int(moment.timestamp())


def _expires_to_max_age(expires: Optional[str], created: int) -> int:
    if expires:
        epoch = parse_expires(expires)
        if epoch is not None:
            # Past dates clamp to 0 so they never read as a session cookie
            return max(epoch - created, 0)
    return 0


def default_path(url_path: str) -> str:
    """
    Default cookie path for a request path: its directory portion.

    ``/a/b/c`` gives ``/a/b``; ``/x`` and the empty path give ``/``.
    """
    if not url_path or not url_path.startswith("/"):
        return "/"
    index = url_path.rfind("/")
    if index <= 0:
        return "/"
    return url_path[:index]


def matches_path(url_path: str, cookie_path: str) -> bool:
    """True if ``cookie_path`` equals or is a prefix of ``url_path``."""
    if url_path == cookie_path:
        return True
    return url_path.startswith(cookie_path)
