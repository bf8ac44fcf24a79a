# ragfuse/ingestion/chunking/__init__.py
"""Chunkers and the engine that runs them."""

from ragfuse.ingestion.chunking.base import AsyncChunker, Chunker
from ragfuse.ingestion.chunking.engine import ChunkingEngine
from ragfuse.ingestion.chunking.plugins import (
    FixedWindowChunker,
    HybridChunker,
    SemanticChunker,
    SentenceChunker,
    estimate_token_count,
)
from ragfuse.ingestion.chunking.sentences import split_sentences

__all__ = [
    "Chunker",
    "AsyncChunker",
    "ChunkingEngine",
    "FixedWindowChunker",
    "SemanticChunker",
    "HybridChunker",
    "SentenceChunker",
    "estimate_token_count",
    "split_sentences",
]
