from __future__ import annotations

import logging
import os

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_LEVEL_ENV = "PIPETOK_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    """Configure stdlib logging for applications embedding pipetok.

    Respects env var PIPETOK_LOG_LEVEL if `level` is None. The library itself
    never calls this on import.
    """
    lvl = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=getattr(logging, lvl, logging.INFO), format=_DEFAULT_FORMAT)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
