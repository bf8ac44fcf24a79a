# ragfuse/llm/embedding.py
"""
OpenAI embeddings client.

Usage:
    client = OpenAIEmbeddingClient.from_config(config.embedding)
    vector = await client.embed("hello world")
    vectors = await embed_in_batches(client, texts)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, ClassVar, List, Optional, Sequence

import httpx

from ragfuse.config.schema import EmbeddingConfig
from ragfuse.core.exceptions import EmbeddingError
from ragfuse.core.retry import CircuitBreaker, RetryPolicy
from ragfuse.llm.base import HTTPProviderClient
from ragfuse.llm.credentials import resolve_api_key
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import EMBEDDING

if TYPE_CHECKING:
    from ragfuse.retrieval.protocols import EmbeddingProvider

logger = get_logger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
EMBEDDINGS_PATH = "/embeddings"


class OpenAIEmbeddingClient(HTTPProviderClient):
    """Async client for the OpenAI /embeddings endpoint."""

    provider: ClassVar[str] = "openai"
    timeout_type: ClassVar[str] = "embedding"
    error_cls = EmbeddingError

    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        dimensions: Optional[int] = None,
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
        self.dimensions = dimensions

    @classmethod
    def from_config(
        cls,
        config: EmbeddingConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "OpenAIEmbeddingClient":
        """Build a client from config, resolving the API key (raises CredentialError)."""
        api_key = resolve_api_key(provider="openai", config={"api_key": config.api_key})
        retry_policy = RetryPolicy(max_retries=config.max_retries) if config.max_retries else None
        return cls(
            api_key=api_key,
            model=config.model,
            base_url=config.base_url,
            dimensions=config.dimensions,
            retry_policy=retry_policy,
            transport=transport,
        )

    def _payload(self, texts: Sequence[str]) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.model, "input": list(texts)}
        if self.dimensions is not None:
            payload["dimensions"] = self.dimensions
        return payload

    async def embed(self, text: str) -> List[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed several texts in one request.

        The result is in input order regardless of the order the API
        returns items in.
        """
        if not texts:
            return []

        response = await self._post(EMBEDDINGS_PATH, self._payload(texts))

        try:
            items = sorted(response["data"], key=lambda item: item["index"])
            vectors = [[float(x) for x in item["embedding"]] for item in items]
        except (KeyError, TypeError) as exc:
            raise EmbeddingError(f"Malformed embedding response: {exc}") from exc

        if len(vectors) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(vectors)}")

        logger.debug(f"{EMBEDDING} Embedded {len(texts)} texts with {self.model}")
        return vectors


async def embed_in_batches(
    provider: "EmbeddingProvider",
    texts: Sequence[str],
    batch_size: int = 100,
    delay: float = 0.1,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[List[float]]:
    """
    Embed many texts, `batch_size` per request, pausing `delay` seconds
    between requests. Output order matches input order.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    vectors: List[List[float]] = []
    total = len(texts)

    for start in range(0, total, batch_size):
        batch = list(texts[start : start + batch_size])
        vectors.extend(await provider.embed_batch(batch))

        if start + batch_size < total and delay > 0:
            await sleep(delay)

    logger.info(f"{EMBEDDING} Embedded {total} texts in {(total + batch_size - 1) // batch_size} batches")
    return vectors


__all__ = ["OpenAIEmbeddingClient", "embed_in_batches"]
