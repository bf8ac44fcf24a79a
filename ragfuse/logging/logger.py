# ragfuse/logging/logger.py
"""
Unified logging setup for ragfuse.

All modules use:
    from ragfuse.logging.logger import get_logger
    logger = get_logger(__name__)

Configuration happens once, in configure_logging() (the CLI entrypoint
calls it). Library code never touches handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

DEFAULT_FORMAT = "[%(levelname)s] %(name)s - %(message)s"


def configure_logging(
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    stream: TextIO = sys.stdout,
) -> None:
    """
    Configure the root logging handler.

    Safe to call multiple times: a handler is only added when the root
    logger has none.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)

    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for a module.

    Example:
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


__all__ = ["DEFAULT_FORMAT", "configure_logging", "get_logger"]
