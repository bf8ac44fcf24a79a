# ragfuse/retrieval/hyde/generator.py
"""
HyDE (Hypothetical Document Embeddings) query embedding.

A question and the passage that answers it are often far apart in
embedding space. HyDE asks an LLM for a plausible answer and embeds that
instead of the question. If generation fails the raw query is embedded.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import HYDE

if TYPE_CHECKING:
    from ragfuse.retrieval.protocols import ChatClient, EmbeddingProvider

logger = get_logger(__name__)

_PROMPTS_DIR = Path(__file__).parent / "prompts"


def _load_prompt(name: str) -> str:
    """Load a prompt template by name."""
    prompt_path = _PROMPTS_DIR / f"{name}.txt"
    return prompt_path.read_text(encoding="utf-8").strip()


@dataclass(frozen=True)
class DualEmbedding:
    query_embedding: list[float]
    hyde_embedding: list[float]


@dataclass
class HydeQueryEmbedder:
    """
    Embeds queries through a generated hypothetical answer.

    The system prompt is loaded from prompts/hypothesis.txt unless given.
    """

    chat: "ChatClient"
    embedder: "EmbeddingProvider"
    system_prompt: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if self.system_prompt is None:
            self.system_prompt = _load_prompt("hypothesis")

    async def generate(self, query: str) -> str:
        """Generate a hypothetical answer. Raises whatever the chat client raises."""
        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": query},
        ]
        answer = (await self.chat.chat(messages)).strip()
        if not answer:
            raise ValueError("empty hypothetical answer")
        return answer

    async def embed_query(self, query: str) -> list[float]:
        """Embed a hypothetical answer to `query`, or `query` itself if generation fails."""
        try:
            hypothesis = await self.generate(query)
        except Exception as e:
            logger.warning(f"{HYDE} Generation failed, embedding raw query instead: {e}")
            return await self.embedder.embed(query)

        logger.debug(f"{HYDE} Generated {len(hypothesis)}-char hypothesis")
        return await self.embedder.embed(hypothesis)

    async def embed_dual(self, query: str) -> DualEmbedding:
        """Both the direct query embedding and the HyDE embedding, computed concurrently."""
        direct, hyde = await asyncio.gather(
            self.embedder.embed(query),
            self.embed_query(query),
        )
        return DualEmbedding(query_embedding=direct, hyde_embedding=hyde)


__all__ = ["DualEmbedding", "HydeQueryEmbedder"]
