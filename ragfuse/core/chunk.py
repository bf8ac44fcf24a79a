# ragfuse/core/chunk.py
"""
Chunk - Core data model for ragfuse.

A chunk is the retrievable unit of document text. Chunkers produce them
exactly once per (document, chunking pass); they are immutable afterwards.
A chunk belongs to exactly one document.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def make_chunk_id(doc_id: str, chunk_index: int) -> str:
    """Build the canonical chunk id."""
    return f"{doc_id}:{chunk_index}"


class Chunk(BaseModel):
    """
    Canonical chunk model.

    Position is recorded either as a character span (fixed-window chunking)
    or a page number (page-by-page chunking), or both. Semantic chunks carry
    their sentence count and the average similarity between their sentences.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Chunk ID")
    doc_id: str = Field(..., description="Parent document ID")
    content: str = Field(..., description="Chunk text content")
    chunk_index: int = Field(..., ge=0, description="Ordinal of this chunk within its document")
    start_char: Optional[int] = Field(default=None, description="Start offset (inclusive)")
    end_char: Optional[int] = Field(default=None, description="End offset (exclusive)")
    page_number: Optional[int] = Field(default=None, description="Source page number")
    sentence_count: Optional[int] = Field(default=None, description="Sentences in this chunk")
    similarity: Optional[float] = Field(
        default=None,
        description="Average intra-chunk similarity (1.0 = not compared, 0.0 = unscored)",
    )
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Chunk metadata")

    @property
    def span(self) -> Optional[tuple[int, int]]:
        """Character span as (start, end), if known."""
        if self.start_char is None or self.end_char is None:
            return None
        return (self.start_char, self.end_char)


# =============================================================================
# Retrieval Records
# =============================================================================


class ScoredChunk(BaseModel):
    """
    A stored chunk as returned by an index query.

    `score` is whatever the index ranks by (similarity for vector search,
    matched keyword count for keyword search). `similarity` is the vector
    similarity when the index can provide it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    doc_id: str
    content: str
    chunk_index: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)
    score: float = 0.0
    similarity: Optional[float] = None


class RetrievedChunk(BaseModel):
    """A hybrid search result. `similarity` is for display; order comes from `fused_score`."""

    model_config = ConfigDict(frozen=True)

    id: str
    doc_id: str
    content: str
    chunk_index: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)
    similarity: Optional[float] = None
    fused_score: float = 0.0


class RerankedChunk(RetrievedChunk):
    """
    A search result after reranking.

    When the reranker actually ran, `similarity` and `rerank_score` hold the
    relevance score; `original_similarity` keeps the pre-rerank value.
    """

    rerank_score: Optional[float] = None
    original_similarity: Optional[float] = None


__all__ = ["Chunk", "make_chunk_id", "ScoredChunk", "RetrievedChunk", "RerankedChunk"]
