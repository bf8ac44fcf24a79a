# ragfuse/config/schema.py
"""
Configuration schema for ragfuse.

This is the single source of truth for ragfuse configuration.

Schema hierarchy:
- RagfuseConfig: The complete config (what load_config returns)
- ChunkingConfig: fixed / semantic / hybrid chunking blocks
- SearchConfig: Hybrid ranker settings
- RerankConfig: Reranker settings
- EmbeddingConfig / ChatConfig: Provider settings
- HydeConfig: Hypothetical-document query embedding
- StorageConfig: Postgres settings (ragfuse.storage.config)

Every block can be resolved against a dict of overrides. Resolution
validates each field and returns a new frozen value; invalid values raise
ConfigValidationError.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ragfuse.core.exceptions import ConfigValidationError
from ragfuse.storage.config import StorageConfig

ConfigT = TypeVar("ConfigT", bound="ResolvableConfig")

DEFAULT_SEPARATORS: Tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


def format_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class ResolvableConfig(BaseModel):
    """Base for immutable config blocks that accept per-call overrides."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def build(cls: type[ConfigT], data: Optional[Mapping[str, Any]] = None) -> ConfigT:
        """Validate a mapping into this config, raising ConfigValidationError."""
        try:
            return cls.model_validate(dict(data or {}))
        except ValidationError as exc:
            raise ConfigValidationError(
                f"Invalid {cls.__name__}: {format_validation_error(exc)}"
            ) from exc

    def resolve(self: ConfigT, overrides: Optional[Mapping[str, Any]] = None) -> ConfigT:
        """
        Return a fully populated copy with `overrides` applied.

        Keys whose value is None are ignored, so callers can pass optional
        arguments straight through.
        """
        if not overrides:
            return self

        merged = self.model_dump()
        merged.update({k: v for k, v in overrides.items() if v is not None})
        return type(self).build(merged)


# =============================================================================
# Chunking Configuration
# =============================================================================


class ChunkConfig(ResolvableConfig):
    """
    Fixed-window chunking settings.

    Example:
        >>> ChunkConfig().resolve({"chunk_size": 500, "chunk_overlap": 50})
    """

    chunk_size: int = Field(default=1000, ge=1, description="Window size in characters")
    chunk_overlap: int = Field(default=200, ge=0, description="Characters shared by adjacent windows")
    separators: Tuple[str, ...] = Field(
        default=DEFAULT_SEPARATORS,
        description="Preferred break points, highest priority first",
    )

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )
        return self

    @classmethod
    def for_tokens(cls, target_tokens: int = 250) -> "ChunkConfig":
        """Window sized for roughly `target_tokens` tokens (~4 chars each), 20% overlap."""
        if target_tokens < 1:
            raise ConfigValidationError(f"target_tokens must be >= 1, got {target_tokens}")

        size = target_tokens * 4
        return cls.build({"chunk_size": size, "chunk_overlap": size // 5})


class SemanticChunkConfig(ResolvableConfig):
    """Semantic (embedding-driven) chunking settings."""

    max_chunk_size: int = Field(default=1500, ge=1, description="Hard cap on chunk length")
    min_chunk_size: int = Field(default=200, ge=0, description="Chunks shorter than this never split on topic")
    similarity_threshold: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Below this similarity a topic boundary is assumed",
    )
    sentence_window: int = Field(default=3, ge=1, description="Trailing sentences compared against")
    embed_batch_size: int = Field(default=20, ge=1, description="Sentences embedded concurrently per batch")

    @model_validator(mode="after")
    def _check_sizes(self) -> "SemanticChunkConfig":
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError(
                f"min_chunk_size ({self.min_chunk_size}) must not exceed max_chunk_size ({self.max_chunk_size})"
            )
        return self


class HybridChunkConfig(ResolvableConfig):
    """Fallback policy between semantic and plain sentence chunking."""

    max_semantic_sentences: int = Field(
        default=100,
        ge=1,
        description="Documents with more sentences skip semantic chunking",
    )
    fallback_max_chunk_size: int = Field(
        default=1500,
        ge=1,
        description="Chunk size cap for the sentence fallback",
    )


class ChunkingConfig(BaseModel):
    """Chunking section of the config file."""

    strategy: Literal["fixed", "semantic", "hybrid"] = Field(
        default="hybrid",
        description="Which chunker ChunkingEngine.from_config builds",
    )
    fixed: ChunkConfig = Field(default_factory=ChunkConfig)
    semantic: SemanticChunkConfig = Field(default_factory=SemanticChunkConfig)
    hybrid: HybridChunkConfig = Field(default_factory=HybridChunkConfig)

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# Retrieval Configuration
# =============================================================================


class SearchConfig(ResolvableConfig):
    """Hybrid ranker settings."""

    limit: int = Field(default=10, ge=1, description="Results returned per search")
    min_similarity: float = Field(default=0.2, ge=0.0, le=1.0, description="Vector stage similarity floor")
    candidate_multiplier: int = Field(default=2, ge=1, description="Candidates fetched per stage = limit * this")
    rrf_k: int = Field(default=60, ge=1, description="Reciprocal Rank Fusion constant")


class RerankConfig(ResolvableConfig):
    """Reranker settings."""

    enabled: bool = Field(default=True, description="Use the reranker when an API key is available")
    model: str = Field(default="rerank-english-v3.0", description="Cohere rerank model")
    top_n: int = Field(default=5, ge=1, description="Chunks kept after reranking")
    base_url: str = Field(default="https://api.cohere.ai/v1")
    api_key: Optional[str] = Field(default=None, description="Explicit key (otherwise env vars)")


# =============================================================================
# Provider Configuration
# =============================================================================


class EmbeddingConfig(ResolvableConfig):
    """Embedding provider settings."""

    model: str = Field(default="text-embedding-3-small")
    base_url: str = Field(default="https://api.openai.com/v1")
    api_key: Optional[str] = Field(default=None, description="Explicit key (otherwise env vars)")
    dimensions: Optional[int] = Field(default=None, ge=1, description="Requested output dimension")
    batch_size: int = Field(default=100, ge=1, description="Texts per embedding request")
    batch_delay: float = Field(default=0.1, ge=0.0, description="Seconds to wait between batches")
    max_retries: int = Field(default=3, ge=0)


class ChatConfig(ResolvableConfig):
    """Chat provider settings (used for HyDE only)."""

    model: str = Field(default="gpt-4o-mini")
    base_url: str = Field(default="https://api.openai.com/v1")
    api_key: Optional[str] = Field(default=None, description="Explicit key (otherwise env vars)")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=300, ge=1)
    max_retries: int = Field(default=3, ge=0)


class HydeConfig(ResolvableConfig):
    """Hypothetical-document query embedding."""

    enabled: bool = Field(default=False)


# =============================================================================
# Root
# =============================================================================


class RagfuseConfig(BaseModel):
    """
    The complete ragfuse configuration.

    Examples:
        >>> config = RagfuseConfig.model_validate(yaml.safe_load(text))
        >>> config.chunking.fixed.chunk_size
        1000
    """

    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    rerank: RerankConfig = Field(default_factory=RerankConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    hyde: HydeConfig = Field(default_factory=HydeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "DEFAULT_SEPARATORS",
    "format_validation_error",
    "ResolvableConfig",
    "ChunkConfig",
    "SemanticChunkConfig",
    "HybridChunkConfig",
    "ChunkingConfig",
    "SearchConfig",
    "RerankConfig",
    "EmbeddingConfig",
    "ChatConfig",
    "HydeConfig",
    "RagfuseConfig",
]
