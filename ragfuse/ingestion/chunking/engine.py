# ragfuse/ingestion/chunking/engine.py
"""
ChunkingEngine - Central controller for chunking operations.

Builds the configured chunker and runs documents through it.

Architecture:
    ChunkingEngine
        ├── fixed    → FixedWindowChunker
        ├── semantic → SemanticChunker (needs an EmbeddingProvider)
        └── hybrid   → HybridChunker (SemanticChunker + SentenceChunker fallback)
"""

from __future__ import annotations

import inspect
from contextlib import nullcontext
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ragfuse.config.schema import ChunkingConfig
from ragfuse.core.chunk import Chunk
from ragfuse.core.exceptions import ChunkingError, ConfigValidationError, EmbeddingError
from ragfuse.core.metrics import MetricsCollector
from ragfuse.ingestion.chunking.base import AsyncChunker, Chunker
from ragfuse.ingestion.chunking.plugins.fixed_window import FixedWindowChunker
from ragfuse.ingestion.chunking.plugins.semantic import HybridChunker, SemanticChunker
from ragfuse.ingestion.chunking.plugins.sentence import SentenceChunker
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CHUNKING
from ragfuse.retrieval.protocols import EmbeddingProvider

logger = get_logger(__name__)

AnyChunker = Union[Chunker, AsyncChunker]


class ChunkingEngine:
    """
    Central controller for chunking operations.

    Usage:
        engine = ChunkingEngine.from_config(config.chunking, embedder=embedder)
        chunks = await engine.run(text, doc_id="handbook")
    """

    def __init__(self, chunker: AnyChunker, metrics: Optional[MetricsCollector] = None) -> None:
        self._chunker = chunker
        self.metrics = metrics

    @classmethod
    def from_config(
        cls,
        config: ChunkingConfig,
        embedder: Optional[EmbeddingProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "ChunkingEngine":
        """
        Create an engine for config.strategy.

        Raises:
            ConfigValidationError: semantic or hybrid strategy without an embedder
        """
        if config.strategy == "fixed":
            return cls(FixedWindowChunker(config.fixed), metrics=metrics)

        if embedder is None:
            raise ConfigValidationError(f"Chunking strategy '{config.strategy}' requires an embedding provider")

        semantic = SemanticChunker(embedder=embedder, config=config.semantic)
        if config.strategy == "semantic":
            return cls(semantic, metrics=metrics)

        hybrid = HybridChunker(
            semantic=semantic,
            fallback=SentenceChunker(max_chunk_size=config.hybrid.fallback_max_chunk_size),
            max_semantic_sentences=config.hybrid.max_semantic_sentences,
        )
        return cls(hybrid, metrics=metrics)

    @property
    def chunker(self) -> AnyChunker:
        return self._chunker

    @property
    def chunker_id(self) -> str:
        return self._chunker.chunker_id

    async def _call(self, text: str, base_meta: Dict[str, Any], **kwargs: Any) -> List[Chunk]:
        result = self._chunker.chunk_text(text, base_meta, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def run(self, text: str, doc_id: str, metadata: Optional[Dict[str, Any]] = None) -> List[Chunk]:
        """
        Chunk one document.

        Returns:
            List of Chunk objects (empty for empty text).

        Raises:
            EmbeddingError: The semantic chunker's embedding calls failed
            ChunkingError: Any other chunker failure
        """
        if not text or not text.strip():
            logger.warning(f"{CHUNKING} Empty content for document: {doc_id}")
            return []

        base_meta: Dict[str, Any] = {**(metadata or {}), "doc_id": doc_id}

        logger.debug(f"{CHUNKING} Using chunker '{self._chunker.plugin_name}' (id: {self.chunker_id}) for '{doc_id}'")

        chunks = await self._guarded(doc_id, self._call(text, base_meta))

        logger.debug(f"{CHUNKING} Extracted {len(chunks)} chunks from '{doc_id}'")
        return chunks

    async def run_pages(
        self,
        pages: Iterable[Tuple[int, str]],
        doc_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Chunk]:
        """
        Chunk a document page by page.

        Chunks never cross pages, carry their page_number, and are indexed
        sequentially across the whole document.
        """
        base_meta: Dict[str, Any] = {**(metadata or {}), "doc_id": doc_id}

        async def chunk_all() -> List[Chunk]:
            chunks: List[Chunk] = []
            for page_number, page_text in pages:
                chunks.extend(
                    await self._call(page_text, base_meta, start_index=len(chunks), page_number=page_number)
                )
            return chunks

        chunks = await self._guarded(doc_id, chunk_all())

        logger.debug(f"{CHUNKING} Extracted {len(chunks)} chunks from paged document '{doc_id}'")
        return chunks

    async def _guarded(self, doc_id: str, work) -> List[Chunk]:
        measure = self.metrics.measure("chunking") if self.metrics else nullcontext()

        try:
            async with measure:
                chunks = await work
        except (ChunkingError, EmbeddingError, ConfigValidationError):
            raise
        except Exception as e:
            logger.error(f"{CHUNKING} Chunker '{self._chunker.plugin_name}' failed for '{doc_id}': {e}")
            raise ChunkingError(f"Chunking failed for document '{doc_id}'") from e

        if self.metrics:
            self.metrics.increment("chunks_created", len(chunks))
        return chunks


__all__ = ["ChunkingEngine"]
