# ragfuse/ingestion/chunking/plugins/semantic.py
"""
Semantic chunking: group consecutive sentences by embedding similarity.

Algorithm (single greedy pass):
    1. Split into sentences and embed each one
    2. Compare each sentence with the last `sentence_window` sentences of
       the current chunk (mean cosine similarity)
    3. Start a new chunk when adding the sentence would exceed
       max_chunk_size, or when similarity drops below the threshold and
       the current chunk has reached min_chunk_size

Text no longer than max_chunk_size is returned as a single chunk without
any embedding calls.

HybridChunker wraps this with a cost and failure policy: documents with
too many sentences, or whose semantic pass fails, are chunked by sentence
accumulation instead.

Chunker ID formats:
    "semantic:{max}:{min}:{threshold}:{window}"
    "hybrid:{max_semantic_sentences}:{semantic chunker_id}"
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ragfuse.config.schema import SemanticChunkConfig
from ragfuse.core.chunk import Chunk
from ragfuse.core.exceptions import EmbeddingError
from ragfuse.core.vectors import cosine_similarity
from ragfuse.ingestion.chunking.plugins.sentence import SentenceChunker, build_sentence_chunk
from ragfuse.ingestion.chunking.sentences import split_sentences
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import CHUNKING
from ragfuse.retrieval.protocols import EmbeddingProvider

logger = get_logger(__name__)

DEFAULT_MAX_SEMANTIC_SENTENCES = 100


def _mean(values: Sequence[float], default: float = 1.0) -> float:
    return sum(values) / len(values) if values else default


@dataclass
class SemanticChunker:
    """
    Embedding-driven sentence grouping.

    Example:
        >>> chunker = SemanticChunker(embedder, SemanticChunkConfig())
        >>> chunks = await chunker.chunk_text(text, {"doc_id": "doc-1"})
    """

    embedder: EmbeddingProvider
    config: SemanticChunkConfig = field(default_factory=SemanticChunkConfig)
    plugin_name: str = field(default="semantic", repr=False)

    @property
    def chunker_id(self) -> str:
        c = self.config
        return f"{self.plugin_name}:{c.max_chunk_size}:{c.min_chunk_size}:{c.similarity_threshold}:{c.sentence_window}"

    async def embed_sentences(self, sentences: Sequence[str], batch_size: int) -> List[List[float]]:
        """Embed one sentence per call; calls within a batch run concurrently, batches in sequence."""
        vectors: List[List[float]] = []

        try:
            for start in range(0, len(sentences), batch_size):
                batch = sentences[start : start + batch_size]
                vectors.extend(await asyncio.gather(*(self.embedder.embed(s) for s in batch)))
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Failed to embed sentences: {e}") from e

        return vectors

    async def chunk_text(
        self,
        text: str,
        base_meta: Dict[str, Any],
        start_index: int = 0,
        page_number: Optional[int] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> List[Chunk]:
        """
        Chunk text by semantic similarity.

        Args:
            text: Raw text
            base_meta: Metadata copied into every chunk ("doc_id" names the document)
            start_index: chunk_index of the first chunk produced
            page_number: Recorded on every chunk when chunking one page
            overrides: Per-call config overrides (validated)

        Raises:
            ConfigValidationError: Invalid overrides, or embeddings of different dimension
            EmbeddingError: The embedding provider failed
        """
        cfg = self.config.resolve(overrides)

        if not text or not text.strip():
            return []

        sentences = split_sentences(text)
        if not sentences:
            return []

        if len(text) <= cfg.max_chunk_size:
            return [
                build_sentence_chunk(
                    [text.strip()], base_meta, start_index, 1.0, page_number, sentence_count=len(sentences)
                )
            ]

        logger.debug(f"{CHUNKING} Generating embeddings for {len(sentences)} sentences")
        embeddings = await self.embed_sentences(sentences, cfg.embed_batch_size)

        chunks: List[Chunk] = []
        current: List[int] = [0]
        current_size = len(sentences[0])
        similarities: List[float] = []

        def emit() -> None:
            chunks.append(
                build_sentence_chunk(
                    [sentences[i] for i in current],
                    base_meta,
                    start_index + len(chunks),
                    _mean(similarities),
                    page_number,
                )
            )

        for i in range(1, len(sentences)):
            sentence = sentences[i]
            window = current[-cfg.sentence_window :]
            similarity = _mean([cosine_similarity(embeddings[i], embeddings[j]) for j in window])
            similarities.append(similarity)

            would_exceed_max = current_size + len(sentence) > cfg.max_chunk_size
            topic_shift = similarity < cfg.similarity_threshold and current_size >= cfg.min_chunk_size

            if would_exceed_max or topic_shift:
                emit()
                current = [i]
                current_size = len(sentence)
                similarities = []
            else:
                current.append(i)
                current_size += len(sentence)

        emit()

        logger.info(f"{CHUNKING} Created {len(chunks)} semantic chunks from {len(sentences)} sentences")
        return chunks


@dataclass
class HybridChunker:
    """
    Semantic chunking when affordable, sentence accumulation otherwise.

    Semantic chunking is attempted when the document has between 1 and
    max_semantic_sentences sentences. Any failure there is logged and the
    sentence fallback is used instead.
    """

    semantic: SemanticChunker
    fallback: SentenceChunker = field(default_factory=SentenceChunker)
    max_semantic_sentences: int = DEFAULT_MAX_SEMANTIC_SENTENCES
    plugin_name: str = field(default="hybrid", repr=False)

    @property
    def chunker_id(self) -> str:
        return f"{self.plugin_name}:{self.max_semantic_sentences}:{self.semantic.chunker_id}"

    async def chunk_text(
        self,
        text: str,
        base_meta: Dict[str, Any],
        start_index: int = 0,
        page_number: Optional[int] = None,
    ) -> List[Chunk]:
        sentences = split_sentences(text)

        if 0 < len(sentences) <= self.max_semantic_sentences:
            try:
                return await self.semantic.chunk_text(text, base_meta, start_index, page_number)
            except Exception as e:
                logger.error(f"{CHUNKING} Semantic chunking failed, falling back to sentence-based: {e}")
        elif sentences:
            logger.debug(
                f"{CHUNKING} {len(sentences)} sentences exceeds {self.max_semantic_sentences}; "
                f"using sentence-based chunking"
            )

        return self.fallback.chunk_sentences(sentences, base_meta, start_index, page_number)


__all__ = ["SemanticChunker", "HybridChunker", "DEFAULT_MAX_SEMANTIC_SENTENCES"]
