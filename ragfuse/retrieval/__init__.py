# ragfuse/retrieval/__init__.py
"""
Query-time retrieval: keyword extraction, RRF fusion, the hybrid ranker,
reranking and HyDE.
"""

from ragfuse.retrieval.fusion import FusedResult, RankedResult, reciprocal_rank_fusion
from ragfuse.retrieval.hybrid import HybridRanker
from ragfuse.retrieval.hyde import HydeQueryEmbedder
from ragfuse.retrieval.keywords import extract_keywords
from ragfuse.retrieval.rerank import Reranker

__all__ = [
    "extract_keywords",
    "RankedResult",
    "FusedResult",
    "reciprocal_rank_fusion",
    "HybridRanker",
    "Reranker",
    "HydeQueryEmbedder",
]
