# ragfuse/llm/rerank.py
"""Cohere rerank client."""

from __future__ import annotations

from typing import ClassVar, List, Optional, Sequence, Tuple

import httpx

from ragfuse.core.exceptions import RerankError
from ragfuse.core.retry import CircuitBreaker, RetryPolicy
from ragfuse.llm.base import HTTPProviderClient
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import RERANK

logger = get_logger(__name__)

DEFAULT_MODEL = "rerank-english-v3.0"
DEFAULT_BASE_URL = "https://api.cohere.ai/v1"
RERANK_PATH = "/rerank"


class CohereRerankClient(HTTPProviderClient):
    """
    Async client for the Cohere /rerank endpoint.

    rerank() returns (input_index, relevance_score) pairs, best first.
    """

    provider: ClassVar[str] = "cohere"
    timeout_type: ClassVar[str] = "rerank"
    error_cls = RerankError

    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            retry_policy=retry_policy,
            circuit_breaker=circuit_breaker,
            transport=transport,
        )
        self.model = model

    async def rerank(
        self,
        query: str,
        documents: Sequence[str],
        top_n: Optional[int] = None,
    ) -> List[Tuple[int, float]]:
        if not documents:
            return []

        payload = {
            "model": self.model,
            "query": query,
            "documents": list(documents),
            "return_documents": False,
        }
        if top_n is not None:
            payload["top_n"] = top_n

        response = await self._post(RERANK_PATH, payload)

        try:
            ranked = [(int(r["index"]), float(r["relevance_score"])) for r in response["results"]]
        except (KeyError, TypeError, ValueError) as exc:
            raise RerankError(f"Failed to extract rerank results: {exc}") from exc

        for idx, _ in ranked:
            if not 0 <= idx < len(documents):
                raise RerankError(f"Rerank result index {idx} out of range for {len(documents)} documents")

        logger.debug(f"{RERANK} Reranked {len(documents)} documents with {self.model}")
        return ranked


__all__ = ["CohereRerankClient"]
