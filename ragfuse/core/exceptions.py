# ragfuse/core/exceptions.py
"""
All exceptions raised by ragfuse.

Hierarchy:
    RagfuseError
    ├── ConfigValidationError - Malformed configuration (fail fast, never retried)
    │   └── DimensionMismatchError - Vectors of different length compared
    ├── ChunkingError - Chunking pipeline failure
    └── ProviderError - External collaborator failure
        ├── EmbeddingError - Embedding provider failure
        ├── RetrieverError - Index query failure
        │   ├── VectorSearchError - Vector index failure
        │   └── LexicalSearchError - Keyword index failure
        ├── RerankError - Reranking failure (always downgraded, never raised to callers)
        └── ChatError - Chat completion failure (HyDE)
"""

from __future__ import annotations


class RagfuseError(Exception):
    """Base class for all ragfuse errors."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ConfigValidationError(RagfuseError, ValueError):
    """Configuration or input failed validation."""

    pass


class DimensionMismatchError(ConfigValidationError):
    """Two vectors of different dimension were compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vectors must have the same length (got {left} and {right})")
        self.left = left
        self.right = right


# =============================================================================
# Chunking Errors
# =============================================================================


class ChunkingError(RagfuseError):
    """Chunking failed."""

    pass


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(RagfuseError):
    """An external collaborator (embedding, index, reranker, LLM) failed."""

    pass


class EmbeddingError(ProviderError):
    """Embedding provider failed (API failure, malformed response, etc.)."""

    pass


class RetrieverError(ProviderError):
    """General retrieval failure."""

    pass


class VectorSearchError(RetrieverError):
    """Vector index lookup failed."""

    pass


class LexicalSearchError(RetrieverError):
    """Keyword index lookup failed."""

    pass


class RerankError(ProviderError):
    """Reranking failed or returned invalid data."""

    pass


class ChatError(ProviderError):
    """Chat completion failed."""

    pass


__all__ = [
    "RagfuseError",
    # Validation
    "ConfigValidationError",
    "DimensionMismatchError",
    # Chunking
    "ChunkingError",
    # Providers
    "ProviderError",
    "EmbeddingError",
    "RetrieverError",
    "VectorSearchError",
    "LexicalSearchError",
    "RerankError",
    "ChatError",
]
