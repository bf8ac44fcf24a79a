# ragfuse/backends/memory.py
"""
In-memory chunk index.

Implements both VectorIndex and LexicalIndex with the same ordering rules
as PgVectorIndex:
- vector search: similarity descending, then id; chunks without an
  embedding are invisible
- keyword search: number of matched keywords descending, then id;
  case-insensitive substring matching, any keyword matches

Used by tests and by the CLI when no database is configured.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from ragfuse.core.chunk import Chunk, ScoredChunk
from ragfuse.core.exceptions import DimensionMismatchError
from ragfuse.core.vectors import cosine_similarities
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import VECTOR_DB

logger = get_logger(__name__)


@dataclass
class _Entry:
    chunk: Chunk
    embedding: Optional[np.ndarray] = None


@dataclass
class InMemoryChunkIndex:
    """Dict-backed chunk store with numpy vector search."""

    dim: Optional[int] = None
    _entries: Dict[str, _Entry] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self._entries)

    def add_chunks(self, chunks: Iterable[Chunk]) -> int:
        """
        Store chunks, replacing every stored chunk of their documents.

        A stored chunk of the same document that is not in `chunks` is
        dropped. A replaced chunk keeps its embedding only if its content
        did not change.
        """
        chunks = list(chunks)
        keep = {c.id for c in chunks}
        doc_ids = {c.doc_id for c in chunks}
        for cid in [cid for cid, e in self._entries.items() if e.chunk.doc_id in doc_ids and cid not in keep]:
            del self._entries[cid]

        for chunk in chunks:
            previous = self._entries.get(chunk.id)
            embedding = previous.embedding if previous and previous.chunk.content == chunk.content else None
            self._entries[chunk.id] = _Entry(chunk=chunk, embedding=embedding)
        return len(chunks)

    def set_embeddings(self, embeddings: Mapping[str, Sequence[float]]) -> int:
        """Attach vectors to stored chunks. Unknown ids are ignored."""
        updated = 0
        for chunk_id, vector in embeddings.items():
            entry = self._entries.get(chunk_id)
            if entry is None:
                continue

            arr = np.asarray(vector, dtype=np.float64)
            if self.dim is None:
                self.dim = arr.shape[0]
            elif arr.shape[0] != self.dim:
                raise DimensionMismatchError(self.dim, arr.shape[0])

            entry.embedding = arr
            updated += 1
        return updated

    def delete_document(self, doc_id: str) -> int:
        """Remove every chunk of a document. Returns the number removed."""
        doomed = [cid for cid, entry in self._entries.items() if entry.chunk.doc_id == doc_id]
        for cid in doomed:
            del self._entries[cid]
        return len(doomed)

    def pending_chunk_ids(self) -> List[str]:
        return [cid for cid, entry in self._entries.items() if entry.embedding is None]

    def _visible(self, scope: Optional[Sequence[str]]) -> List[_Entry]:
        allowed = set(scope) if scope else None
        return [
            e
            for e in self._entries.values()
            if e.embedding is not None and (allowed is None or e.chunk.doc_id in allowed)
        ]

    @staticmethod
    def _record(chunk: Chunk, score: float, similarity: Optional[float]) -> ScoredChunk:
        return ScoredChunk(
            id=chunk.id,
            doc_id=chunk.doc_id,
            content=chunk.content,
            chunk_index=chunk.chunk_index,
            metadata=dict(chunk.metadata),
            score=score,
            similarity=similarity,
        )

    async def vector_top_k(
        self,
        vector: Sequence[float],
        k: int,
        min_similarity: float = 0.0,
        scope: Optional[Sequence[str]] = None,
    ) -> List[ScoredChunk]:
        entries = self._visible(scope)
        if not entries or k < 1:
            return []

        matrix = np.vstack([e.embedding for e in entries])
        sims = cosine_similarities(vector, matrix)

        ranked = sorted(
            (
                (float(sim), entry)
                for sim, entry in zip(sims, entries)
                if sim >= min_similarity
            ),
            key=lambda pair: (-pair[0], pair[1].chunk.id),
        )

        logger.debug(f"{VECTOR_DB} In-memory vector search: {len(ranked)} of {len(entries)} above {min_similarity}")
        return [self._record(entry.chunk, sim, sim) for sim, entry in ranked[:k]]

    async def keyword_top_k(
        self,
        keywords: Sequence[str],
        k: int,
        scope: Optional[Sequence[str]] = None,
        query_vector: Optional[Sequence[float]] = None,
    ) -> List[ScoredChunk]:
        needles = [kw.casefold() for kw in keywords if kw]
        if not needles or k < 1:
            return []

        matches = []
        for entry in self._visible(scope):
            haystack = entry.chunk.content.casefold()
            hits = sum(1 for needle in needles if needle in haystack)
            if hits:
                matches.append((hits, entry))

        matches.sort(key=lambda pair: (-pair[0], pair[1].chunk.id))
        top = matches[:k]
        if query_vector is None or not top:
            return [self._record(entry.chunk, float(hits), None) for hits, entry in top]

        sims = cosine_similarities(query_vector, np.vstack([entry.embedding for _, entry in top]))
        return [self._record(entry.chunk, float(hits), float(sim)) for (hits, entry), sim in zip(top, sims)]


__all__ = ["InMemoryChunkIndex"]
