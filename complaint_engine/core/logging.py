"""
Centralized logging setup for hosts embedding the engine.
Service modules only call logging.getLogger(__name__); the host decides output.
"""

import logging
from typing import Optional, Union

from complaint_engine.core.settings import settings

_FORMAT = "%(asctime)s service=%(name)s level=%(levelname)s msg=%(message)s"


def setup_logging(service: str = "complaint_engine", level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    Configure stdout logging for a service.

    Args:
        service: Logical service name used for the returned logger
        level: Level name or number (defaults to settings.LOG_LEVEL)

    Returns:
        The named service logger
    """
    level = level if level is not None else settings.LOG_LEVEL
    lvl = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    logging.basicConfig(level=lvl, format=_FORMAT)
    logger = logging.getLogger(service)
    logger.setLevel(lvl)
    return logger


__all__ = ["setup_logging"]
