from __future__ import annotations

import logging

from finhub.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Attach a single stream handler to the ``finhub`` logger."""
    logger = logging.getLogger("finhub")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
