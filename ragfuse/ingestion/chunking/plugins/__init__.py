# ragfuse/ingestion/chunking/plugins/__init__.py
"""Built-in chunkers."""

from ragfuse.ingestion.chunking.plugins.fixed_window import FixedWindowChunker, estimate_token_count
from ragfuse.ingestion.chunking.plugins.semantic import HybridChunker, SemanticChunker
from ragfuse.ingestion.chunking.plugins.sentence import SentenceChunker

__all__ = [
    "FixedWindowChunker",
    "estimate_token_count",
    "SemanticChunker",
    "HybridChunker",
    "SentenceChunker",
]
