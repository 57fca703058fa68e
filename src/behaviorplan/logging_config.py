"""
Logging Setup

Configures standard library logging from application settings.
"""

from __future__ import annotations

import logging

from behaviorplan.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging.

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL
    """
    logging.basicConfig(level=level or settings.LOG_LEVEL, format=LOG_FORMAT, force=True)

    # SQL echo is noisy outside debugging sessions
    if not settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
