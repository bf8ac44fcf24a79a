# ragfuse/retrieval/hybrid.py
"""
Hybrid search: vector similarity + keyword matching merged with RRF.

Flow:
    1. Vector stage: top (limit * candidate_multiplier) chunks by cosine distance
    2. Keyword stage: same number of chunks matching any query keyword
    3. Reciprocal Rank Fusion over both rankings
    4. Stable sort by fused score, truncate to limit

Keywords catch exact terms (acronyms, identifiers, product names) that
embeddings blur. The two stages run concurrently; if one fails the other
is cancelled.
"""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from typing import Awaitable, Dict, List, Optional, Sequence

from ragfuse.config.schema import SearchConfig
from ragfuse.core.chunk import RetrievedChunk, ScoredChunk
from ragfuse.core.exceptions import (
    ConfigValidationError,
    LexicalSearchError,
    RetrieverError,
    VectorSearchError,
)
from ragfuse.core.metrics import MetricsCollector
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import RETRIEVER
from ragfuse.retrieval.fusion import FusedResult, reciprocal_rank_fusion, to_ranked
from ragfuse.retrieval.keywords import extract_keywords
from ragfuse.retrieval.protocols import LexicalIndex, VectorIndex

logger = get_logger(__name__)


async def _run_stages(*stages: Awaitable[List[ScoredChunk]]) -> List[List[ScoredChunk]]:
    """Run search stages concurrently. The first failure cancels the others and is re-raised."""
    tasks = [asyncio.ensure_future(stage) for stage in stages]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _to_retrieved(record: ScoredChunk, similarity: Optional[float], fused_score: float) -> RetrievedChunk:
    return RetrievedChunk(
        id=record.id,
        doc_id=record.doc_id,
        content=record.content,
        chunk_index=record.chunk_index,
        metadata=dict(record.metadata),
        similarity=similarity,
        fused_score=fused_score,
    )


class HybridRanker:
    """
    Ranks chunks for a query by fusing vector and keyword search.

    Stateless between calls; one instance can serve concurrent searches.

    Args:
        vector_index: Anything implementing VectorIndex
        lexical_index: Anything implementing LexicalIndex (often the same object)
        config: Default search settings, overridable per call
        metrics: Optional collector; records "hybrid_search" durations
    """

    def __init__(
        self,
        vector_index: VectorIndex,
        lexical_index: LexicalIndex,
        config: Optional[SearchConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.vector_index = vector_index
        self.lexical_index = lexical_index
        self.config = config or SearchConfig()
        self.metrics = metrics

    async def search(
        self,
        query_vector: Sequence[float],
        query_text: str,
        limit: Optional[int] = None,
        min_similarity: Optional[float] = None,
        scope: Optional[Sequence[str]] = None,
    ) -> List[RetrievedChunk]:
        """
        Run a hybrid search.

        Args:
            query_vector: Embedding of the query
            query_text: Raw query text (keywords come from here)
            limit: Maximum results (default from config)
            min_similarity: Vector stage similarity floor (default from config)
            scope: Restrict to these document ids; None or empty means all

        Returns:
            At most `limit` chunks, unique ids, fused score descending.

        Raises:
            ConfigValidationError: Invalid limit or min_similarity
            VectorSearchError / LexicalSearchError: An index failed
        """
        cfg = self.config.resolve({"limit": limit, "min_similarity": min_similarity})
        measure = self.metrics.measure("hybrid_search") if self.metrics else nullcontext()

        async with measure:
            return await self._search(query_vector, query_text, cfg, list(scope) if scope else None)

    async def _search(
        self,
        query_vector: Sequence[float],
        query_text: str,
        cfg: SearchConfig,
        scope: Optional[List[str]],
    ) -> List[RetrievedChunk]:
        candidates = cfg.limit * cfg.candidate_multiplier
        keywords = extract_keywords(query_text)

        if not keywords:
            vector_hits = await self._vector_stage(query_vector, candidates, cfg.min_similarity, scope)
            logger.debug(f"{RETRIEVER} No keywords in query; returning {min(len(vector_hits), cfg.limit)} vector hits")
            return [
                _to_retrieved(hit, hit.similarity, 1.0 / (cfg.rrf_k + rank))
                for rank, hit in enumerate(vector_hits[: cfg.limit], start=1)
            ]

        vector_hits, keyword_hits = await _run_stages(
            self._vector_stage(query_vector, candidates, cfg.min_similarity, scope),
            self._lexical_stage(keywords, candidates, scope, query_vector),
        )

        fused = self._fuse(vector_hits, keyword_hits, cfg.rrf_k)

        records: Dict[str, ScoredChunk] = {}
        for hit in list(vector_hits) + list(keyword_hits):
            records.setdefault(hit.id, hit)

        results = [
            _to_retrieved(records[f.chunk_id], f.display_similarity, f.fused_score)
            for f in fused[: cfg.limit]
        ]

        logger.info(
            f"{RETRIEVER} Hybrid search: {len(vector_hits)} vector + {len(keyword_hits)} keyword hits "
            f"({len(keywords)} keywords) -> {len(results)} results"
        )
        return results

    @staticmethod
    def _fuse(
        vector_hits: Sequence[ScoredChunk],
        keyword_hits: Sequence[ScoredChunk],
        rrf_k: int,
    ) -> List[FusedResult]:
        display: Dict[str, Optional[float]] = {}
        for hit in vector_hits:
            display.setdefault(hit.id, hit.similarity)
        for hit in keyword_hits:
            display.setdefault(hit.id, hit.similarity)

        return reciprocal_rank_fusion(
            [
                to_ranked([h.id for h in vector_hits], [h.score for h in vector_hits]),
                to_ranked([h.id for h in keyword_hits], [h.score for h in keyword_hits]),
            ],
            k=rrf_k,
            display_similarity=display,
        )

    async def _vector_stage(
        self,
        query_vector: Sequence[float],
        k: int,
        min_similarity: float,
        scope: Optional[List[str]],
    ) -> List[ScoredChunk]:
        try:
            return list(await self.vector_index.vector_top_k(query_vector, k, min_similarity, scope))
        except (RetrieverError, ConfigValidationError):
            raise
        except Exception as exc:
            raise VectorSearchError(f"Vector search failed: {exc}") from exc

    async def _lexical_stage(
        self,
        keywords: List[str],
        k: int,
        scope: Optional[List[str]],
        query_vector: Sequence[float],
    ) -> List[ScoredChunk]:
        try:
            return list(await self.lexical_index.keyword_top_k(keywords, k, scope, query_vector=query_vector))
        except (RetrieverError, ConfigValidationError):
            raise
        except Exception as exc:
            raise LexicalSearchError(f"Keyword search failed: {exc}") from exc


__all__ = ["HybridRanker"]
