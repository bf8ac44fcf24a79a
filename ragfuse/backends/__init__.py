# ragfuse/backends/__init__.py
"""Chunk index backends."""

from ragfuse.backends.memory import InMemoryChunkIndex
from ragfuse.backends.pgvector import PgVectorIndex

__all__ = ["InMemoryChunkIndex", "PgVectorIndex"]
