"""
ragfuse - hybrid retrieval core for RAG.

Documents are chunked (fixed-window, semantic or hybrid), chunks are
embedded and stored, and queries are answered by fusing vector and
keyword search with Reciprocal Rank Fusion, optionally reranked.

Public API:
    Chunking:
        - ChunkingEngine, FixedWindowChunker, SemanticChunker, HybridChunker
    Retrieval:
        - HybridRanker, Reranker, reciprocal_rank_fusion, HydeQueryEmbedder
    Data:
        - Chunk, RetrievedChunk, RerankedChunk
    Config:
        - load_config, RagfuseConfig

Architecture:
    ragfuse/
    ├── core/        # Chunk model, errors, vectors, http, retry, metrics
    ├── config/      # Schema + layered YAML loading
    ├── ingestion/   # Chunkers and the chunking engine
    ├── retrieval/   # Keywords, RRF, hybrid ranker, reranker, HyDE
    ├── llm/         # Embedding / rerank / chat provider clients
    ├── backends/    # pgvector and in-memory chunk indexes
    ├── storage/     # Postgres connection pool
    └── cli/         # typer CLI

Example:
    >>> from ragfuse.backends import InMemoryChunkIndex
    >>> index = InMemoryChunkIndex()
    >>> ranker = HybridRanker(index, index)
    >>> results = await ranker.search(query_vector, "what is RRF?", limit=5)
"""

from ragfuse.config import RagfuseConfig, load_config
from ragfuse.core.chunk import Chunk, RerankedChunk, RetrievedChunk
from ragfuse.ingestion.chunking import ChunkingEngine, FixedWindowChunker, HybridChunker, SemanticChunker
from ragfuse.retrieval import HybridRanker, HydeQueryEmbedder, Reranker, reciprocal_rank_fusion

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Chunk",
    "RetrievedChunk",
    "RerankedChunk",
    "ChunkingEngine",
    "FixedWindowChunker",
    "SemanticChunker",
    "HybridChunker",
    "HybridRanker",
    "Reranker",
    "reciprocal_rank_fusion",
    "HydeQueryEmbedder",
    "RagfuseConfig",
    "load_config",
]
