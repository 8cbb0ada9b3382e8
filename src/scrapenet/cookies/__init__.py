"""Cookie model and cookie jar."""

from .cookie import Cookie, default_path, matches_path, parse_expires
from .jar import CookieJar, host_domains, serialize_cookies, sort_by_path

__all__ = [
    "Cookie",
    "CookieJar",
    "default_path",
    "host_domains",
    "matches_path",
    "parse_expires",
    "serialize_cookies",
    "sort_by_path",
]
