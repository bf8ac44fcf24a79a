# ragfuse/logging/__init__.py
"""Logging helpers shared by every ragfuse module."""

from ragfuse.logging.logger import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
