# ragfuse/config/__init__.py
"""Configuration schema and layered YAML loading."""

from ragfuse.config.loader import deep_merge, load_config
from ragfuse.config.schema import (
    ChatConfig,
    ChunkConfig,
    ChunkingConfig,
    EmbeddingConfig,
    HybridChunkConfig,
    HydeConfig,
    RagfuseConfig,
    RerankConfig,
    SearchConfig,
    SemanticChunkConfig,
)

__all__ = [
    "deep_merge",
    "load_config",
    "RagfuseConfig",
    "ChunkingConfig",
    "ChunkConfig",
    "SemanticChunkConfig",
    "HybridChunkConfig",
    "SearchConfig",
    "RerankConfig",
    "EmbeddingConfig",
    "ChatConfig",
    "HydeConfig",
]
