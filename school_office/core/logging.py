"""Application logging setup."""

import logging
import sys

from school_office.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stderr handler on the package logger (idempotent)."""
    logger = logging.getLogger("school_office")
    logger.setLevel(level or settings.log_level)
    if any(getattr(h, "_school_office", False) for h in logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._school_office = True
    logger.addHandler(handler)
