"""
Logging setup

Stdout carries the protocol, so log records go to a file or to stderr,
never to stdout.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO", file: Optional[Union[str, Path]] = None) -> logging.Handler:
    """
    Attach a single handler to the "tsunami" logger.

    Args:
        level: Level name (DEBUG, INFO, ...)
        file: Log file path; parent directories are created. None = stderr

    Returns:
        The installed handler
    """
    if file:
        path = Path(file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger("tsunami")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return handler
