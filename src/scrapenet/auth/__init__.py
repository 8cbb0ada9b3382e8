"""Authentication providers and their registry."""

from .basic import BasicAuthentication
from .manager import AuthenticationManager, AuthScope, parse_challenge
from .protocols import AuthenticationProvider

__all__ = [
    "AuthScope",
    "AuthenticationManager",
    "AuthenticationProvider",
    "BasicAuthentication",
    "parse_challenge",
]
