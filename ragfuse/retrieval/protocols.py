# ragfuse/retrieval/protocols.py
"""
Protocols for the collaborators retrieval depends on.

Anything with matching async methods satisfies them; the concrete
implementations live in ragfuse.llm and ragfuse.backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from ragfuse.core.chunk import ScoredChunk

# =============================================================================
# Providers
# =============================================================================


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into vectors. embed_batch preserves input order."""

    async def embed(self, text: str) -> list[float]: ...

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]: ...


@runtime_checkable
class RerankProvider(Protocol):
    """Scores documents against a query; returns (input_index, relevance) best first."""

    async def rerank(
        self, query: str, documents: Sequence[str], top_n: Optional[int] = None
    ) -> list[tuple[int, float]]: ...


@runtime_checkable
class ChatClient(Protocol):
    """Protocol for chat services (used for HyDE)."""

    async def chat(self, messages: list[dict[str, Any]]) -> str: ...


# =============================================================================
# Indexes
# =============================================================================


@runtime_checkable
class VectorIndex(Protocol):
    """
    Nearest-neighbour search over chunk embeddings.

    Results are ordered by cosine distance ascending, carry
    similarity = 1 - distance, and exclude chunks without an embedding.
    `scope` restricts results to the given document ids; None means all.
    """

    async def vector_top_k(
        self,
        vector: Sequence[float],
        k: int,
        min_similarity: float = 0.0,
        scope: Optional[Sequence[str]] = None,
    ) -> list[ScoredChunk]: ...


@runtime_checkable
class LexicalIndex(Protocol):
    """
    Keyword search over chunk content.

    A chunk matches if it contains any keyword as a case-insensitive
    substring. Results are ordered by relevance descending. When a
    query vector is given, records carry their similarity to it for
    display; it never affects the order.
    """

    async def keyword_top_k(
        self,
        keywords: Sequence[str],
        k: int,
        scope: Optional[Sequence[str]] = None,
        query_vector: Optional[Sequence[float]] = None,
    ) -> list[ScoredChunk]: ...


__all__ = ["EmbeddingProvider", "RerankProvider", "ChatClient", "VectorIndex", "LexicalIndex"]
