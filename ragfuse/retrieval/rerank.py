# ragfuse/retrieval/rerank.py
"""
Cross-encoder reranking with graceful degradation.

Reranking is an improvement, never a requirement: when the provider is
unavailable or fails, the caller gets the first top_n chunks in their
original order and the failure is logged.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import httpx

from ragfuse.config.schema import RerankConfig
from ragfuse.core.chunk import RerankedChunk, RetrievedChunk
from ragfuse.core.exceptions import RerankError
from ragfuse.llm.credentials import CredentialError, resolve_api_key
from ragfuse.llm.rerank import CohereRerankClient
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import RERANK
from ragfuse.retrieval.protocols import RerankProvider

logger = get_logger(__name__)

DEFAULT_TOP_N = 5


def _passthrough(chunk: RetrievedChunk) -> RerankedChunk:
    return RerankedChunk(
        **chunk.model_dump(exclude={"rerank_score", "original_similarity"}),
        rerank_score=chunk.similarity,
        original_similarity=chunk.similarity,
    )


def _reranked(chunk: RetrievedChunk, relevance: float) -> RerankedChunk:
    data = chunk.model_dump(exclude={"rerank_score", "original_similarity"})
    data["similarity"] = relevance
    return RerankedChunk(
        **data,
        rerank_score=relevance,
        original_similarity=chunk.similarity,
    )


class Reranker:
    """
    Reorders retrieved chunks with a RerankProvider.

    `enabled` is decided once, at construction: a Reranker without a
    provider (e.g. no API key) always degrades to passthrough.
    """

    def __init__(self, provider: Optional[RerankProvider] = None, top_n: int = DEFAULT_TOP_N) -> None:
        if top_n < 1:
            raise ValueError(f"top_n must be >= 1, got {top_n}")

        self.provider = provider
        self.top_n = top_n

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    @classmethod
    def from_config(
        cls,
        config: Optional[RerankConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Reranker":
        """
        Build a Reranker backed by Cohere.

        The API key is resolved here, once. A missing key yields a disabled
        reranker rather than an error.
        """
        config = config or RerankConfig()

        if not config.enabled:
            logger.info(f"{RERANK} Reranking disabled by config")
            return cls(provider=None, top_n=config.top_n)

        try:
            api_key = resolve_api_key(provider="cohere", config={"api_key": config.api_key})
        except CredentialError as e:
            logger.warning(f"{RERANK} No Cohere API key, reranking disabled: {e}")
            return cls(provider=None, top_n=config.top_n)

        provider = CohereRerankClient(
            api_key=api_key,
            model=config.model,
            base_url=config.base_url,
            transport=transport,
        )
        return cls(provider=provider, top_n=config.top_n)

    async def rerank(
        self,
        query: str,
        chunks: Sequence[RetrievedChunk],
        top_n: Optional[int] = None,
    ) -> List[RerankedChunk]:
        """
        Rerank chunks against the query.

        Returns:
            [] for no chunks; every chunk unchanged when there are no more
            than top_n; otherwise the provider's order (relevance replaces
            similarity), or the first top_n in input order if the provider
            is disabled or fails.
        """
        n = top_n if top_n is not None else self.top_n
        if n < 1:
            raise ValueError(f"top_n must be >= 1, got {n}")

        if not chunks:
            return []

        if len(chunks) <= n:
            return [_passthrough(c) for c in chunks]

        if self.provider is None:
            logger.debug(f"{RERANK} Reranker disabled; keeping first {n} of {len(chunks)} chunks")
            return [_passthrough(c) for c in chunks[:n]]

        try:
            ranked = await self.provider.rerank(query, [c.content for c in chunks], top_n=n)
            results = []
            used: set[int] = set()
            for idx, relevance in ranked:
                if not 0 <= idx < len(chunks):
                    raise RerankError(f"Rerank index {idx} out of range for {len(chunks)} chunks")
                if idx in used:
                    continue
                used.add(idx)
                results.append(_reranked(chunks[idx], relevance))
                if len(results) == n:
                    break
        except Exception as e:
            logger.error(f"{RERANK} Reranking failed, returning original order: {e}")
            return [_passthrough(c) for c in chunks[:n]]

        if len(results) < n:
            # Provider returned fewer unique chunks than asked for.
            missing = [i for i in range(len(chunks)) if i not in used][: n - len(results)]
            logger.warning(f"{RERANK} Provider ranked {len(results)} of {n} chunks; filling {len(missing)} in input order")
            results.extend(_passthrough(chunks[i]) for i in missing)

        logger.info(f"{RERANK} Reranked {len(chunks)} chunks -> {len(results)}")
        return results


__all__ = ["DEFAULT_TOP_N", "Reranker"]
