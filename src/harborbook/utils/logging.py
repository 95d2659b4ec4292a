"""Logging helpers shared by every harborbook module."""

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER_NAME = "harborbook"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Install a single stderr handler on the harborbook root logger.

    Args:
        level: Log level name. Defaults to HARBORBOOK_LOG_LEVEL or WARNING.

    Returns:
        The harborbook root logger.
    """
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = (level or os.getenv("HARBORBOOK_LOG_LEVEL") or "WARNING").upper()
    root.setLevel(getattr(logging, level_name, logging.WARNING))
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the harborbook namespace."""
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
