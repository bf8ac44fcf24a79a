# ragfuse/backends/pgvector.py
"""
pgvector-backed chunk index.

Design principles:
- Documents own their chunks (ON DELETE CASCADE)
- Chunks are stored first and embedded later; a chunk with a NULL
  embedding is pending and invisible to search
- HNSW index over cosine distance
- Every query is parameterised; keywords are passed as ILIKE patterns

Implements both VectorIndex and LexicalIndex, so one instance serves both
stages of HybridRanker.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import psycopg
from psycopg.types.json import Jsonb

from ragfuse.core.chunk import Chunk, ScoredChunk
from ragfuse.core.exceptions import DimensionMismatchError, LexicalSearchError, VectorSearchError
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import VECTOR_DB
from ragfuse.storage.config import StorageConfig
from ragfuse.storage.postgres import PostgresConnectionManager

logger = get_logger(__name__)


def like_pattern(keyword: str) -> str:
    """Escape LIKE wildcards and wrap the keyword for substring matching."""
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PgVectorIndex:
    """
    Chunk storage and search on Postgres + pgvector.

    Usage:
        async with PostgresConnectionManager(storage_config) as manager:
            index = PgVectorIndex(manager)
            await index.ensure_schema()
            await index.upsert_chunks(chunks)
            await index.set_embeddings({c.id: v for c, v in zip(chunks, vectors)})
            hits = await index.vector_top_k(query_vector, k=20)
    """

    # SQL templates
    CREATE_DOCUMENTS_TABLE = """
        CREATE TABLE IF NOT EXISTS documents (
            id TEXT PRIMARY KEY,
            title TEXT,
            metadata JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """

    CREATE_CHUNKS_TABLE = """
        CREATE TABLE IF NOT EXISTS chunks (
            id TEXT PRIMARY KEY,
            document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
            chunk_index INTEGER NOT NULL,
            content TEXT NOT NULL,
            start_char INTEGER,
            end_char INTEGER,
            page_number INTEGER,
            sentence_count INTEGER,
            similarity DOUBLE PRECISION,
            metadata JSONB NOT NULL DEFAULT '{{}}',
            embedding vector({dim}),
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """

    CREATE_HNSW_INDEX = """
        CREATE INDEX IF NOT EXISTS chunks_embedding_hnsw_idx
        ON chunks USING hnsw (embedding vector_cosine_ops)
        WITH (m = {m}, ef_construction = {ef_construction})
    """

    CREATE_DOCUMENT_INDEX = """
        CREATE INDEX IF NOT EXISTS chunks_document_id_idx ON chunks (document_id)
    """

    INSERT_DOCUMENT = """
        INSERT INTO documents (id, title, metadata)
        VALUES (%(id)s, %(title)s, %(metadata)s)
        ON CONFLICT (id) DO NOTHING
    """

    UPSERT_CHUNK = """
        INSERT INTO chunks (
            id, document_id, chunk_index, content, start_char, end_char,
            page_number, sentence_count, similarity, metadata
        )
        VALUES (
            %(id)s, %(document_id)s, %(chunk_index)s, %(content)s, %(start_char)s, %(end_char)s,
            %(page_number)s, %(sentence_count)s, %(similarity)s, %(metadata)s
        )
        ON CONFLICT (id) DO UPDATE SET
            document_id = EXCLUDED.document_id,
            chunk_index = EXCLUDED.chunk_index,
            content = EXCLUDED.content,
            start_char = EXCLUDED.start_char,
            end_char = EXCLUDED.end_char,
            page_number = EXCLUDED.page_number,
            sentence_count = EXCLUDED.sentence_count,
            similarity = EXCLUDED.similarity,
            metadata = EXCLUDED.metadata,
            embedding = CASE
                WHEN chunks.content = EXCLUDED.content THEN chunks.embedding
                ELSE NULL
            END
    """

    PRUNE_CHUNKS = """
        DELETE FROM chunks
        WHERE document_id = %(document_id)s AND NOT (id = ANY(%(keep)s))
    """

    SET_EMBEDDING = "UPDATE chunks SET embedding = %(embedding)s WHERE id = %(id)s"

    DELETE_DOCUMENT = "DELETE FROM documents WHERE id = %(id)s"

    PENDING_CHUNKS = """
        SELECT id, content FROM chunks
        WHERE embedding IS NULL
          AND (%(document_id)s::text IS NULL OR document_id = %(document_id)s)
        ORDER BY document_id, chunk_index
    """

    VECTOR_SEARCH = """
        SELECT id, document_id, content, chunk_index, metadata,
               1 - (embedding <=> %(vector)s) AS similarity
        FROM chunks
        WHERE embedding IS NOT NULL
          AND 1 - (embedding <=> %(vector)s) >= %(min_similarity)s
          AND (%(scope)s::text[] IS NULL OR document_id = ANY(%(scope)s))
        ORDER BY embedding <=> %(vector)s, id
        LIMIT %(k)s
    """

    KEYWORD_SEARCH = """
        SELECT c.id, c.document_id, c.content, c.chunk_index, c.metadata, m.matches,
               1 - (c.embedding <=> %(vector)s::vector) AS similarity
        FROM chunks c
        CROSS JOIN LATERAL (
            SELECT count(*) AS matches
            FROM unnest(%(patterns)s::text[]) AS p(pattern)
            WHERE c.content ILIKE p.pattern
        ) m
        WHERE c.embedding IS NOT NULL
          AND m.matches > 0
          AND (%(scope)s::text[] IS NULL OR c.document_id = ANY(%(scope)s))
        ORDER BY m.matches DESC, c.id
        LIMIT %(k)s
    """

    def __init__(self, manager: PostgresConnectionManager, config: Optional[StorageConfig] = None) -> None:
        self._manager = manager
        self.config = config or manager.config

    @property
    def dim(self) -> int:
        return self.config.embedding_dim

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    async def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        async with self._manager.connection() as conn:
            await conn.execute(self.CREATE_DOCUMENTS_TABLE)
            await conn.execute(self.CREATE_CHUNKS_TABLE.format(dim=self.dim))
            await conn.execute(
                self.CREATE_HNSW_INDEX.format(
                    m=self.config.hnsw_m,
                    ef_construction=self.config.hnsw_ef_construction,
                )
            )
            await conn.execute(self.CREATE_DOCUMENT_INDEX)

        logger.info(f"{VECTOR_DB} Schema ready (dim={self.dim})")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def upsert_chunks(
        self,
        chunks: Sequence[Chunk],
        titles: Optional[Mapping[str, str]] = None,
    ) -> int:
        """
        Store chunks (and their documents) without embeddings.

        The chunks passed for a document replace all of its stored chunks:
        rows of that document not in `chunks` are deleted in the same
        transaction. Re-stored chunks keep their embedding only if their
        content is unchanged.
        """
        if not chunks:
            return 0

        titles = titles or {}
        doc_ids = list(dict.fromkeys(c.doc_id for c in chunks))

        async with self._manager.connection() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(
                    self.INSERT_DOCUMENT,
                    [{"id": d, "title": titles.get(d), "metadata": Jsonb({})} for d in doc_ids],
                )
                await cur.executemany(self.UPSERT_CHUNK, [self._chunk_params(c) for c in chunks])
                await cur.executemany(
                    self.PRUNE_CHUNKS,
                    [{"document_id": d, "keep": [c.id for c in chunks if c.doc_id == d]} for d in doc_ids],
                )

        logger.debug(f"{VECTOR_DB} Upserted {len(chunks)} chunks for {len(doc_ids)} documents")
        return len(chunks)

    @staticmethod
    def _chunk_params(chunk: Chunk) -> Dict[str, Any]:
        return {
            "id": chunk.id,
            "document_id": chunk.doc_id,
            "chunk_index": chunk.chunk_index,
            "content": chunk.content,
            "start_char": chunk.start_char,
            "end_char": chunk.end_char,
            "page_number": chunk.page_number,
            "sentence_count": chunk.sentence_count,
            "similarity": chunk.similarity,
            "metadata": Jsonb(chunk.metadata),
        }

    async def set_embeddings(self, embeddings: Mapping[str, Sequence[float]]) -> int:
        """Attach embedding vectors to stored chunks."""
        if not embeddings:
            return 0

        params = []
        for chunk_id, vector in embeddings.items():
            if len(vector) != self.dim:
                raise DimensionMismatchError(self.dim, len(vector))
            params.append({"id": chunk_id, "embedding": np.asarray(vector, dtype=np.float32)})

        async with self._manager.connection() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(self.SET_EMBEDDING, params)

        logger.debug(f"{VECTOR_DB} Stored {len(params)} embeddings")
        return len(params)

    async def delete_document(self, doc_id: str) -> int:
        """Delete a document; its chunks go with it. Returns rows deleted (0 or 1)."""
        async with self._manager.connection() as conn:
            cur = await conn.execute(self.DELETE_DOCUMENT, {"id": doc_id})
            deleted = cur.rowcount

        logger.info(f"{VECTOR_DB} Deleted document '{doc_id}' ({deleted} rows)")
        return deleted

    async def pending_chunks(self, doc_id: Optional[str] = None) -> List[tuple[str, str]]:
        """(id, content) of chunks still waiting for an embedding."""
        async with self._manager.connection() as conn:
            cur = await conn.execute(self.PENDING_CHUNKS, {"document_id": doc_id})
            rows = await cur.fetchall()
        return [(row[0], row[1]) for row in rows]

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    @staticmethod
    def _scope_param(scope: Optional[Sequence[str]]) -> Optional[List[str]]:
        return list(scope) if scope else None

    @staticmethod
    def _row_to_record(row: Sequence[Any], score: float, similarity: Optional[float]) -> ScoredChunk:
        return ScoredChunk(
            id=row[0],
            doc_id=row[1],
            content=row[2],
            chunk_index=row[3] or 0,
            metadata=dict(row[4] or {}),
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
        if len(vector) != self.dim:
            raise DimensionMismatchError(self.dim, len(vector))

        params = {
            "vector": np.asarray(vector, dtype=np.float32),
            "min_similarity": min_similarity,
            "scope": self._scope_param(scope),
            "k": k,
        }

        try:
            async with self._manager.connection() as conn:
                cur = await conn.execute(self.VECTOR_SEARCH, params)
                rows = await cur.fetchall()
        except psycopg.Error as e:
            raise VectorSearchError(f"pgvector search failed: {e}") from e

        results = []
        for row in rows:
            similarity = float(row[5]) if row[5] is not None else 0.0
            results.append(self._row_to_record(row, similarity, similarity))

        logger.debug(f"{VECTOR_DB} Vector search returned {len(results)} chunks")
        return results

    async def keyword_top_k(
        self,
        keywords: Sequence[str],
        k: int,
        scope: Optional[Sequence[str]] = None,
        query_vector: Optional[Sequence[float]] = None,
    ) -> List[ScoredChunk]:
        """
        Chunks containing any keyword, most keywords matched first.

        With `query_vector`, each hit also carries its cosine similarity to
        the query for display; ranking is unaffected.
        """
        patterns = [like_pattern(kw) for kw in keywords if kw]
        if not patterns:
            return []

        vector = None
        if query_vector is not None:
            if len(query_vector) != self.dim:
                raise DimensionMismatchError(self.dim, len(query_vector))
            vector = np.asarray(query_vector, dtype=np.float32)

        params = {"patterns": patterns, "scope": self._scope_param(scope), "k": k, "vector": vector}

        try:
            async with self._manager.connection() as conn:
                cur = await conn.execute(self.KEYWORD_SEARCH, params)
                rows = await cur.fetchall()
        except psycopg.Error as e:
            raise LexicalSearchError(f"Keyword search failed: {e}") from e

        results = [
            self._row_to_record(row, float(row[5]), float(row[6]) if row[6] is not None else None) for row in rows
        ]

        logger.debug(f"{VECTOR_DB} Keyword search ({len(patterns)} keywords) returned {len(results)} chunks")
        return results


__all__ = ["PgVectorIndex", "like_pattern"]
