# ragfuse/ingestion/chunking/base.py
"""
Base protocols for chunkers.

Each chunker must implement:
- plugin_name: str - The chunker identifier ("fixed", "semantic", "hybrid", "sentence")
- chunker_id: str - Unique ID including params that affect output
- chunk_text(text, base_meta, start_index=0) -> List[Chunk]

Chunkers that call an embedding provider are async (AsyncChunker); the
rest are plain functions of their input (Chunker). ChunkingEngine accepts
either.

base_meta["doc_id"] names the owning document; every key in base_meta is
copied into each chunk's metadata.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, runtime_checkable

from ragfuse.core.chunk import Chunk


@runtime_checkable
class Chunker(Protocol):
    """
    Protocol for synchronous chunkers.

    The chunker_id format is: "{plugin_name}:{param1}:{param2}:..."

    Example:
        >>> chunker = FixedWindowChunker(ChunkConfig.build({"chunk_size": 500, "chunk_overlap": 50}))
        >>> chunker.chunker_id
        'fixed:500:50'
    """

    plugin_name: str

    @property
    def chunker_id(self) -> str: ...

    def chunk_text(self, text: str, base_meta: Dict[str, Any], start_index: int = 0) -> List[Chunk]: ...


@runtime_checkable
class AsyncChunker(Protocol):
    """Protocol for chunkers that need I/O (embedding calls)."""

    plugin_name: str

    @property
    def chunker_id(self) -> str: ...

    async def chunk_text(
        self, text: str, base_meta: Dict[str, Any], start_index: int = 0
    ) -> List[Chunk]: ...


def doc_id_from(base_meta: Dict[str, Any]) -> str:
    return str(base_meta.get("doc_id") or "unknown")


__all__ = ["Chunker", "AsyncChunker", "Chunk", "doc_id_from"]
