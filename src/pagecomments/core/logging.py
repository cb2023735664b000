"""Logging setup for the API process, the queue worker and CLI scripts."""

from __future__ import annotations

import logging
import sys

from pagecomments.core.settings import settings


def configure_logging(level: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    Calling this more than once is harmless; existing handlers are kept.
    """
    root = logging.getLogger()
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    root.setLevel(resolved)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(settings.log_format, "%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)

    if not settings.sql_debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
