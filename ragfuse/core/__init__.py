# ragfuse/core/__init__.py
"""
ragfuse core - data model, errors and shared utilities.

Public API:
    - Chunk: The canonical chunk model
    - cosine_similarity: Vector similarity used by chunking and indexes
    - Exceptions: Standard error hierarchy
"""

from ragfuse.core.chunk import Chunk, RerankedChunk, RetrievedChunk, ScoredChunk, make_chunk_id
from ragfuse.core.exceptions import (
    ChatError,
    ChunkingError,
    ConfigValidationError,
    DimensionMismatchError,
    EmbeddingError,
    LexicalSearchError,
    ProviderError,
    RagfuseError,
    RerankError,
    RetrieverError,
    VectorSearchError,
)
from ragfuse.core.vectors import cosine_similarity

__all__ = [
    "Chunk",
    "ScoredChunk",
    "RetrievedChunk",
    "RerankedChunk",
    "make_chunk_id",
    "cosine_similarity",
    "RagfuseError",
    "ConfigValidationError",
    "DimensionMismatchError",
    "ChunkingError",
    "ProviderError",
    "EmbeddingError",
    "RetrieverError",
    "VectorSearchError",
    "LexicalSearchError",
    "RerankError",
    "ChatError",
]
