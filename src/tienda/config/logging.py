"""Logging setup for the tienda command line."""

from __future__ import annotations

import logging

# Per-request chatter from the HTTP stack; tienda logs its own store calls.
HTTP_LOGGERS = ("httpx", "httpcore", "hishel")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for CLI output.

    The HTTP client loggers stay at WARNING unless ``level`` is DEBUG, so a normal
    run shows fallbacks and step failures without one line per request. Pass
    ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    http_level = logging.NOTSET if level <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
