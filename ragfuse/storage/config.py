# ragfuse/storage/config.py
"""Settings for the Postgres + pgvector chunk store."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StorageConfig(BaseModel):
    """
    Where chunks live and how their vector index is built.

    The CLI fills `connection_string` from RAGFUSE_DATABASE_URL when the
    config file leaves it empty; this model never reads the environment.
    """

    model_config = ConfigDict(extra="forbid")

    connection_string: Optional[str] = Field(default=None, description="postgresql:// URL of the chunk store")
    embedding_dim: int = Field(default=1536, ge=1, description="Width of the embedding column")

    pool_min_size: int = Field(default=1, ge=1, le=100, description="Connections kept open when idle")
    pool_max_size: int = Field(default=10, ge=1, le=100, description="Upper bound on open connections")

    # HNSW build parameters
    hnsw_m: int = Field(default=16, ge=4, le=64, description="Graph neighbours per node")
    hnsw_ef_construction: int = Field(default=64, ge=16, le=512, description="Candidate list size while building")

    def validate_connection(self) -> str:
        """Return the connection string, raising if none is configured."""
        if not self.connection_string:
            raise ValueError("connection_string is required for Postgres storage")
        return self.connection_string


__all__ = ["StorageConfig"]
