# ragfuse/storage/postgres.py
"""
PostgreSQL connection management.

Handles:
- Async connection pooling via psycopg_pool with health checks
- pgvector extension initialization
- pgvector type registration on every pooled connection

The manager is constructed explicitly and passed to whatever needs it
(PgVectorIndex, the CLI). Call open() once before use and close() when done,
or use it as an async context manager.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

import psycopg
from pgvector.psycopg import register_vector_async
from psycopg_pool import AsyncConnectionPool

from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import STORAGE
from ragfuse.storage.config import StorageConfig

if TYPE_CHECKING:
    from psycopg import AsyncConnection

logger = get_logger(__name__)

POOL_TIMEOUT = 30.0
RECONNECT_TIMEOUT = 30.0


async def _configure_connection(conn: "AsyncConnection") -> None:
    """Register pgvector types so vectors round-trip as numpy arrays."""
    await register_vector_async(conn)


class PostgresConnectionManager:
    """
    Owns one async connection pool for one database.

    Example:
        async with PostgresConnectionManager(StorageConfig(connection_string=dsn)) as manager:
            async with manager.connection() as conn:
                await conn.execute("SELECT 1")
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config = config or StorageConfig()
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def _ensure_extension(self, conninfo: str) -> None:
        # Type registration needs the extension to exist first.
        async with await psycopg.AsyncConnection.connect(conninfo, autocommit=True) as conn:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")

    async def open(self) -> None:
        """Create the extension if needed and open the pool."""
        if self._pool is not None:
            return

        conninfo = self.config.validate_connection()
        await self._ensure_extension(conninfo)

        pool = AsyncConnectionPool(
            conninfo,
            min_size=self.config.pool_min_size,
            max_size=self.config.pool_max_size,
            open=False,
            configure=_configure_connection,
            check=AsyncConnectionPool.check_connection,
            reconnect_timeout=RECONNECT_TIMEOUT,
            timeout=POOL_TIMEOUT,
        )
        await pool.open(wait=True)
        self._pool = pool
        logger.debug(f"{STORAGE} Opened connection pool (max_size={self.config.pool_max_size})")

    async def close(self) -> None:
        if self._pool is None:
            return

        await self._pool.close()
        self._pool = None
        logger.debug(f"{STORAGE} Closed connection pool")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator["AsyncConnection"]:
        """
        Borrow a pooled connection.

        The pool commits on clean exit and rolls back if the block raises.
        """
        if self._pool is None:
            await self.open()

        async with self._pool.connection() as conn:
            yield conn

    async def is_healthy(self) -> tuple[bool, str]:
        """
        Check if the PostgreSQL connection is healthy.

        Returns:
            Tuple of (is_healthy, message)
        """
        if self._pool is None:
            return False, "Not started"

        try:
            async with self._pool.connection() as conn:
                cur = await conn.execute("SELECT version()")
                row = await cur.fetchone()
        except psycopg.Error as e:
            return False, f"Connection failed: {e}"

        version = row[0] if row else "unknown"
        return True, f"Connected to {version[:50]}..."

    def get_stats(self) -> dict[str, Any]:
        if self._pool is None:
            return {"open": False}

        stats = self._pool.get_stats()
        return {
            "open": True,
            "size": stats.get("pool_size", 0),
            "available": stats.get("pool_available", 0),
        }

    async def __aenter__(self) -> "PostgresConnectionManager":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["PostgresConnectionManager"]
