# tests/unit/test_pgvector_index.py
"""
Unit tests for PgVectorIndex with a mocked connection manager.

Tests cover:
1. Schema creation (dimension and HNSW parameters)
2. Write paths (documents, chunk upserts, embeddings)
3. Search parameters and row mapping
4. Error wrapping for database failures

No real database is touched.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import psycopg
import pytest

from ragfuse.backends.pgvector import PgVectorIndex, like_pattern
from ragfuse.core.chunk import Chunk
from ragfuse.core.exceptions import DimensionMismatchError, LexicalSearchError, VectorSearchError
from ragfuse.storage.config import StorageConfig
from ragfuse.storage.postgres import PostgresConnectionManager

pytestmark = [pytest.mark.postgres, pytest.mark.tier2]


# =============================================================================
# Fixtures
# =============================================================================


class FakeManager:
    """Stands in for PostgresConnectionManager; hands out one mock connection."""

    def __init__(self, config: StorageConfig, rows=None, error: Exception | None = None):
        self.config = config
        self.cursor = MagicMock()
        self.cursor.fetchall = AsyncMock(return_value=rows or [])
        self.cursor.rowcount = 1

        self.writer = MagicMock()
        self.writer.executemany = AsyncMock()

        self.conn = MagicMock()
        self.conn.execute = AsyncMock(return_value=self.cursor, side_effect=error)
        self.conn.cursor.return_value.__aenter__.return_value = self.writer

    @asynccontextmanager
    async def connection(self):
        yield self.conn

    def sql(self, call_index: int = 0) -> str:
        return self.conn.execute.call_args_list[call_index].args[0]

    def params(self, call_index: int = 0) -> dict:
        return self.conn.execute.call_args_list[call_index].args[1]


@pytest.fixture
def config() -> StorageConfig:
    return StorageConfig(connection_string="postgresql://localhost/test", embedding_dim=3, hnsw_m=24)


@pytest.fixture
def manager(config) -> FakeManager:
    return FakeManager(config)


@pytest.fixture
def index(manager) -> PgVectorIndex:
    return PgVectorIndex(manager)


# =============================================================================
# Schema
# =============================================================================


class TestSchema:
    def test_ensure_schema(self, index, manager):
        asyncio.run(index.ensure_schema())

        statements = [c.args[0] for c in manager.conn.execute.call_args_list]
        assert len(statements) == 4
        assert "CREATE TABLE IF NOT EXISTS documents" in statements[0]
        assert "embedding vector(3)" in statements[1]
        assert "ON DELETE CASCADE" in statements[1]
        assert "DEFAULT '{}'" in statements[1]
        assert "USING hnsw (embedding vector_cosine_ops)" in statements[2]
        assert "m = 24" in statements[2]
        assert "ef_construction = 64" in statements[2]


# =============================================================================
# Writes
# =============================================================================


class TestWrites:
    def test_upsert_chunks_writes_documents_then_chunks(self, index, manager):
        chunks = [
            Chunk(id="doc:0", doc_id="doc", content="first", chunk_index=0, metadata={"k": "v"}),
            Chunk(id="doc:1", doc_id="doc", content="second", chunk_index=1, start_char=10, end_char=20),
        ]

        count = asyncio.run(index.upsert_chunks(chunks, titles={"doc": "Handbook"}))

        assert count == 2
        doc_call, chunk_call, prune_call = manager.writer.executemany.call_args_list
        assert doc_call.args[0] == PgVectorIndex.INSERT_DOCUMENT
        assert [p["id"] for p in doc_call.args[1]] == ["doc"]
        assert doc_call.args[1][0]["title"] == "Handbook"
        chunk_params = chunk_call.args[1]
        assert [p["id"] for p in chunk_params] == ["doc:0", "doc:1"]
        assert chunk_params[1]["start_char"] == 10
        assert chunk_params[0]["metadata"].obj == {"k": "v"}
        assert prune_call.args[0] == PgVectorIndex.PRUNE_CHUNKS
        assert prune_call.args[1] == [{"document_id": "doc", "keep": ["doc:0", "doc:1"]}]

    def test_upsert_prunes_per_document(self, index, manager):
        chunks = [
            Chunk(id="a:0", doc_id="a", content="only chunk of a", chunk_index=0),
            Chunk(id="b:0", doc_id="b", content="first of b", chunk_index=0),
            Chunk(id="b:1", doc_id="b", content="second of b", chunk_index=1),
        ]

        asyncio.run(index.upsert_chunks(chunks))

        prune_call = manager.writer.executemany.call_args_list[2]
        assert prune_call.args[1] == [
            {"document_id": "a", "keep": ["a:0"]},
            {"document_id": "b", "keep": ["b:0", "b:1"]},
        ]

    def test_prune_removes_chunks_not_restored(self):
        assert "DELETE FROM chunks" in PgVectorIndex.PRUNE_CHUNKS
        assert "NOT (id = ANY(%(keep)s))" in PgVectorIndex.PRUNE_CHUNKS

    def test_upsert_keeps_embedding_only_for_unchanged_content(self):
        assert "WHEN chunks.content = EXCLUDED.content THEN chunks.embedding" in PgVectorIndex.UPSERT_CHUNK

    def test_upsert_nothing(self, index, manager):
        assert asyncio.run(index.upsert_chunks([])) == 0
        manager.writer.executemany.assert_not_called()

    def test_set_embeddings_as_float32(self, index, manager):
        asyncio.run(index.set_embeddings({"doc:0": [0.1, 0.2, 0.3]}))

        params = manager.writer.executemany.call_args.args[1]
        assert params[0]["id"] == "doc:0"
        assert params[0]["embedding"].dtype == np.float32

    def test_set_embeddings_wrong_dimension(self, index, manager):
        with pytest.raises(DimensionMismatchError):
            asyncio.run(index.set_embeddings({"doc:0": [0.1, 0.2]}))

        manager.writer.executemany.assert_not_called()

    def test_delete_document(self, index, manager):
        assert asyncio.run(index.delete_document("doc")) == 1
        assert manager.params() == {"id": "doc"}
        assert "DELETE FROM documents" in manager.sql()

    def test_pending_chunks(self, config):
        manager = FakeManager(config, rows=[("doc:0", "first"), ("doc:1", "second")])
        index = PgVectorIndex(manager)

        pending = asyncio.run(index.pending_chunks("doc"))

        assert pending == [("doc:0", "first"), ("doc:1", "second")]
        assert manager.params() == {"document_id": "doc"}


# =============================================================================
# Search
# =============================================================================


class TestVectorSearch:
    def test_params_and_mapping(self, config):
        rows = [("doc:0", "doc", "first", 0, {"k": "v"}, 0.91), ("doc:1", "doc", "second", 1, None, 0.5)]
        manager = FakeManager(config, rows=rows)
        index = PgVectorIndex(manager)

        hits = asyncio.run(index.vector_top_k([1.0, 0.0, 0.0], k=20, min_similarity=0.2, scope=["doc"]))

        params = manager.params()
        assert params["k"] == 20
        assert params["min_similarity"] == 0.2
        assert params["scope"] == ["doc"]
        assert params["vector"].dtype == np.float32
        assert [h.id for h in hits] == ["doc:0", "doc:1"]
        assert hits[0].similarity == 0.91
        assert hits[0].metadata == {"k": "v"}
        assert hits[1].metadata == {}

    def test_empty_scope_is_null(self, index, manager):
        asyncio.run(index.vector_top_k([1.0, 0.0, 0.0], k=5, scope=[]))

        assert manager.params()["scope"] is None

    def test_orders_by_distance_then_id(self):
        assert "ORDER BY embedding <=> %(vector)s, id" in PgVectorIndex.VECTOR_SEARCH

    def test_wrong_dimension(self, index):
        with pytest.raises(DimensionMismatchError):
            asyncio.run(index.vector_top_k([1.0], k=5))

    def test_database_error_wrapped(self, config):
        index = PgVectorIndex(FakeManager(config, error=psycopg.OperationalError("server closed")))

        with pytest.raises(VectorSearchError):
            asyncio.run(index.vector_top_k([1.0, 0.0, 0.0], k=5))


class TestKeywordSearch:
    def test_patterns_escaped(self, index, manager):
        asyncio.run(index.keyword_top_k(["rate_limit", "100%"], k=10))

        assert manager.params()["patterns"] == ["%rate\\_limit%", "%100\\%%"]
        assert manager.params()["vector"] is None

    def test_scores_are_match_counts(self, config):
        manager = FakeManager(config, rows=[("doc:0", "doc", "API keys", 0, {}, 2, None)])
        index = PgVectorIndex(manager)

        hits = asyncio.run(index.keyword_top_k(["API", "keys"], k=10))

        assert hits[0].score == 2.0
        assert hits[0].similarity is None

    def test_display_similarity_with_query_vector(self, config):
        manager = FakeManager(config, rows=[("doc:0", "doc", "API keys", 0, {}, 1, 0.42)])
        index = PgVectorIndex(manager)

        hits = asyncio.run(index.keyword_top_k(["API"], k=10, query_vector=[1.0, 0.0, 0.0]))

        assert manager.params()["vector"].dtype == np.float32
        assert hits[0].score == 1.0
        assert hits[0].similarity == 0.42
        assert "ORDER BY m.matches DESC, c.id" in PgVectorIndex.KEYWORD_SEARCH

    def test_query_vector_wrong_dimension(self, index):
        with pytest.raises(DimensionMismatchError):
            asyncio.run(index.keyword_top_k(["API"], k=5, query_vector=[1.0]))

    def test_no_keywords_skips_query(self, index, manager):
        assert asyncio.run(index.keyword_top_k([], k=10)) == []
        manager.conn.execute.assert_not_called()

    def test_database_error_wrapped(self, config):
        index = PgVectorIndex(FakeManager(config, error=psycopg.errors.SyntaxError("bad")))

        with pytest.raises(LexicalSearchError):
            asyncio.run(index.keyword_top_k(["API"], k=5))


class TestLikePattern:
    @pytest.mark.parametrize(
        "keyword,expected",
        [
            ("plain", "%plain%"),
            ("a_b", "%a\\_b%"),
            ("50%", "%50\\%%"),
            ("back\\slash", "%back\\\\slash%"),
        ],
    )
    def test_escaping(self, keyword, expected):
        assert like_pattern(keyword) == expected


# =============================================================================
# Connection manager
# =============================================================================


class TestConnectionManager:
    def test_not_open_is_unhealthy(self, config):
        manager = PostgresConnectionManager(config)

        healthy, message = asyncio.run(manager.is_healthy())

        assert not healthy
        assert message == "Not started"
        assert manager.get_stats() == {"open": False}

    def test_open_requires_connection_string(self):
        manager = PostgresConnectionManager(StorageConfig())

        with pytest.raises(ValueError, match="connection_string"):
            asyncio.run(manager.open())

    def test_close_when_not_open(self, config):
        manager = PostgresConnectionManager(config)

        asyncio.run(manager.close())

        assert not manager.is_open
