"""Logging configuration helpers."""

import logging

from funbooth.config import settings


def configure_logging(level: str = None) -> None:
    """Configure application logging with a single stream handler."""
    logger = logging.getLogger("funbooth")
    logger.setLevel(level or settings.log_level)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
