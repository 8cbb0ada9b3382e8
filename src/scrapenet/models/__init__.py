"""Configuration models for scrapenet."""

from .config import DEFAULT_MAX_REDIRECTS, NetworkConfig, default_max_redirects

__all__ = [
    "DEFAULT_MAX_REDIRECTS",
    "NetworkConfig",
    "default_max_redirects",
]
