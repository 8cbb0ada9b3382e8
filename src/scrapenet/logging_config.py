"""Logging setup for the scrapenet logger tree."""

import logging
import sys
from typing import Optional, Union

LOGGER_NAME = "scrapenet"

# Connection pool activity (connects, retries, proxy tunnels)
WIRE_LOGGER_NAME = "urllib3"

DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _build_handlers(level: int, log_file: Optional[str], formatter: logging.Formatter) -> list:
    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    force: bool = False,
    wire: bool = False,
) -> logging.Logger:
    """
    Configure the ``scrapenet`` logger.

    Request lines, headers, cookie stores and redirects are logged at
    DEBUG; dropped bodies, skipped Set-Cookie headers and missing
    authentication at WARNING.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR) or number
        log_file: Also write records to this file
        format_string: Record format (default: ``DEFAULT_FORMAT``)
        force: Replace handlers that are already installed
        wire: Route urllib3 connection pool logs through the same handlers

    Returns:
        The ``scrapenet`` logger
    """
    numeric_level = _resolve_level(level)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    # Existing handlers are kept unless forced
    if force or not logger.handlers:
        logger.handlers.clear()
        for handler in _build_handlers(numeric_level, log_file, formatter):
            logger.addHandler(handler)
    logger.propagate = False

    if wire:
        wire_logger = logging.getLogger(WIRE_LOGGER_NAME)
        wire_logger.setLevel(numeric_level)
        wire_logger.handlers[:] = list(logger.handlers)
        wire_logger.propagate = False

    return logger
