# ragfuse/ingestion/chunking/plugins/sentence.py
"""
Sentence-accumulation chunker (no embeddings).

Sentences are packed into chunks of at most max_chunk_size characters
(a single longer sentence becomes its own chunk). Chunks are marked
similarity = 0.0, meaning "not scored". This is the fallback used by
HybridChunker when semantic chunking is skipped or fails.

Chunker ID format: "sentence:{max_chunk_size}"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ragfuse.core.chunk import Chunk, make_chunk_id
from ragfuse.ingestion.chunking.base import doc_id_from
from ragfuse.ingestion.chunking.sentences import split_sentences

UNSCORED_SIMILARITY = 0.0


def build_sentence_chunk(
    sentences: Sequence[str],
    base_meta: Dict[str, Any],
    chunk_index: int,
    similarity: float,
    page_number: Optional[int] = None,
    sentence_count: Optional[int] = None,
) -> Chunk:
    """Join sentences with single spaces into one Chunk."""
    doc_id = doc_id_from(base_meta)
    meta = dict(base_meta)
    if page_number is not None:
        meta["page_number"] = page_number

    return Chunk(
        id=make_chunk_id(doc_id, chunk_index),
        doc_id=doc_id,
        content=" ".join(sentences).strip(),
        chunk_index=chunk_index,
        page_number=page_number,
        sentence_count=sentence_count if sentence_count is not None else len(sentences),
        similarity=similarity,
        metadata=meta,
    )


@dataclass
class SentenceChunker:
    max_chunk_size: int = 1500
    plugin_name: str = field(default="sentence", repr=False)

    def __post_init__(self) -> None:
        if self.max_chunk_size < 1:
            raise ValueError(f"max_chunk_size must be >= 1, got {self.max_chunk_size}")

    @property
    def chunker_id(self) -> str:
        return f"{self.plugin_name}:{self.max_chunk_size}"

    def chunk_sentences(
        self,
        sentences: Sequence[str],
        base_meta: Dict[str, Any],
        start_index: int = 0,
        page_number: Optional[int] = None,
    ) -> List[Chunk]:
        chunks: List[Chunk] = []
        current: List[str] = []
        current_size = 0

        for sentence in sentences:
            if current and current_size + len(sentence) > self.max_chunk_size:
                chunks.append(
                    build_sentence_chunk(
                        current, base_meta, start_index + len(chunks), UNSCORED_SIMILARITY, page_number
                    )
                )
                current = []
                current_size = 0

            current.append(sentence)
            current_size += len(sentence)

        if current:
            chunks.append(
                build_sentence_chunk(current, base_meta, start_index + len(chunks), UNSCORED_SIMILARITY, page_number)
            )

        return chunks

    def chunk_text(
        self,
        text: str,
        base_meta: Dict[str, Any],
        start_index: int = 0,
        page_number: Optional[int] = None,
    ) -> List[Chunk]:
        return self.chunk_sentences(split_sentences(text), base_meta, start_index, page_number)


__all__ = ["SentenceChunker", "build_sentence_chunk", "UNSCORED_SIMILARITY"]
