# ragfuse/storage/__init__.py
"""PostgreSQL storage: config and async connection pool."""

from ragfuse.storage.config import StorageConfig
from ragfuse.storage.postgres import PostgresConnectionManager

__all__ = ["StorageConfig", "PostgresConnectionManager"]
