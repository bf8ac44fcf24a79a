# ragfuse/cli/commands/search.py
"""
Search command: hybrid (vector + keyword) search over stored chunks.

Usage:
    ragfuse search "what is reciprocal rank fusion?"
    ragfuse search "RRF" --document handbook --limit 5
    ragfuse search "how do refunds work" --hyde --rerank
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ragfuse.backends.pgvector import PgVectorIndex
from ragfuse.cli.ui import preview, ui
from ragfuse.cli.utils import build_embedder, load_cli_config, resolve_dsn
from ragfuse.config.schema import RagfuseConfig
from ragfuse.core.chunk import RerankedChunk, RetrievedChunk
from ragfuse.core.exceptions import RagfuseError
from ragfuse.llm.chat import OpenAIChatClient
from ragfuse.llm.credentials import CredentialError
from ragfuse.logging.logger import get_logger
from ragfuse.retrieval.hybrid import HybridRanker
from ragfuse.retrieval.hyde.generator import HydeQueryEmbedder
from ragfuse.retrieval.protocols import EmbeddingProvider
from ragfuse.retrieval.rerank import Reranker
from ragfuse.storage.postgres import PostgresConnectionManager

logger = get_logger(__name__)

Result = Union[RetrievedChunk, RerankedChunk]


async def embed_query(query: str, config: RagfuseConfig, embedder: EmbeddingProvider, hyde: bool) -> List[float]:
    if not hyde:
        return await embedder.embed(query)

    try:
        chat = OpenAIChatClient.from_config(config.chat)
    except CredentialError as e:
        ui.warning(f"HyDE disabled: {e}")
        return await embedder.embed(query)

    try:
        return await HydeQueryEmbedder(chat=chat, embedder=embedder).embed_query(query)
    finally:
        await chat.aclose()


def _format_score(value: Optional[float]) -> str:
    return f"{value:.3f}" if value is not None else "-"


def _render(results: Sequence[Result]) -> None:
    rows = []
    for i, r in enumerate(results, start=1):
        rerank = _format_score(r.rerank_score) if isinstance(r, RerankedChunk) else "-"
        rows.append(
            (str(i), r.id, _format_score(r.similarity), f"{r.fused_score:.4f}", rerank, preview(r.content, 120))
        )
    ui.table("Results", ["#", "Chunk", "Similarity", "Fused", "Rerank", "Content"], rows)


def command(
    query: str,
    dsn: Optional[str] = None,
    limit: Optional[int] = None,
    min_similarity: Optional[float] = None,
    documents: Optional[List[str]] = None,
    rerank: bool = False,
    hyde: bool = False,
    config_path: Optional[Path] = None,
) -> None:
    """Run one hybrid search and print the results."""
    config = load_cli_config(config_path)
    storage = config.storage.model_copy(update={"connection_string": resolve_dsn(dsn, config)})
    embedder = build_embedder(config)
    use_hyde = hyde or config.hyde.enabled

    async def run() -> Sequence[Result]:
        try:
            query_vector = await embed_query(query, config, embedder, use_hyde)

            async with PostgresConnectionManager(storage) as manager:
                index = PgVectorIndex(manager)
                ranker = HybridRanker(index, index, config=config.search)
                results = await ranker.search(
                    query_vector,
                    query,
                    limit=limit,
                    min_similarity=min_similarity,
                    scope=documents or None,
                )
        finally:
            await embedder.aclose()

        if not rerank:
            return results

        reranker = Reranker.from_config(config.rerank)
        try:
            return await reranker.rerank(query, results)
        finally:
            if reranker.provider is not None:
                await reranker.provider.aclose()

    ui.header("Search", query)

    try:
        results = asyncio.run(run())
    except RagfuseError as e:
        ui.fail(f"Search failed: {e}")

    if not results:
        ui.warning("No results")
        return

    _render(results)
