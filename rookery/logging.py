"""Logging setup for the rookery package.

Every module logs through ``logging.getLogger(__name__)``; this helper only
attaches a handler to the package root logger and applies the level from
``RookerySettings``.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from rookery.config import RookerySettings

_root_logger = logging.getLogger("rookery")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    settings: RookerySettings,
    *,
    stream: TextIO | None = None,
    fmt: str | None = None,
) -> logging.Logger:
    """Configure the ``rookery`` logger from *settings*.

    ``settings.debug`` forces ``DEBUG``; otherwise ``settings.log_level``
    is used, falling back to ``INFO`` for unknown level names.  Existing
    handlers on the package logger are replaced, so calling this twice
    does not duplicate output.

    Returns
    -------
    logging.Logger
        The configured package root logger.
    """
    if settings.debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, settings.log_level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.setLevel(level)
    _root_logger.addHandler(handler)
    return _root_logger
