# tests/unit/test_chunking_engine.py
"""Tests for ChunkingEngine construction, runs and error wrapping."""

from __future__ import annotations

import asyncio

import pytest

from ragfuse.config.schema import ChunkingConfig
from ragfuse.core.exceptions import ChunkingError, ConfigValidationError, EmbeddingError
from ragfuse.core.metrics import MetricsCollector
from ragfuse.ingestion.chunking.engine import ChunkingEngine
from ragfuse.ingestion.chunking.plugins.fixed_window import FixedWindowChunker
from ragfuse.ingestion.chunking.plugins.semantic import HybridChunker, SemanticChunker

pytestmark = pytest.mark.tier2


class ExplodingChunker:
    plugin_name = "exploding"
    chunker_id = "exploding:1"

    def chunk_text(self, text, base_meta, start_index=0, page_number=None):
        raise RuntimeError("boom")


def _chunking(**data) -> ChunkingConfig:
    return ChunkingConfig.model_validate(data)


# ---------------------------------------------------------------------------
# from_config
# ---------------------------------------------------------------------------


class TestFromConfig:
    def test_fixed(self):
        engine = ChunkingEngine.from_config(_chunking(strategy="fixed", fixed={"chunk_size": 400, "chunk_overlap": 40}))

        assert isinstance(engine.chunker, FixedWindowChunker)
        assert engine.chunker_id == "fixed:400:40"

    def test_semantic(self, fake_embedder):
        engine = ChunkingEngine.from_config(_chunking(strategy="semantic"), embedder=fake_embedder)

        assert isinstance(engine.chunker, SemanticChunker)

    def test_hybrid(self, fake_embedder):
        config = _chunking(strategy="hybrid", hybrid={"max_semantic_sentences": 12, "fallback_max_chunk_size": 900})

        engine = ChunkingEngine.from_config(config, embedder=fake_embedder)

        assert isinstance(engine.chunker, HybridChunker)
        assert engine.chunker.max_semantic_sentences == 12
        assert engine.chunker.fallback.max_chunk_size == 900

    @pytest.mark.parametrize("strategy", ["semantic", "hybrid"])
    def test_embedding_strategies_need_embedder(self, strategy):
        with pytest.raises(ConfigValidationError):
            ChunkingEngine.from_config(_chunking(strategy=strategy))


# ---------------------------------------------------------------------------
# run / run_pages
# ---------------------------------------------------------------------------


class TestRun:
    def test_empty_text_returns_nothing(self):
        engine = ChunkingEngine(FixedWindowChunker())

        assert asyncio.run(engine.run("   ", "doc")) == []

    def test_doc_id_and_metadata(self):
        engine = ChunkingEngine(FixedWindowChunker())

        chunks = asyncio.run(engine.run("Some content.", "handbook", {"source": "hb.md", "doc_id": "ignored"}))

        assert chunks[0].doc_id == "handbook"
        assert chunks[0].metadata == {"source": "hb.md", "doc_id": "handbook"}

    def test_async_chunker(self, fake_embedder):
        engine = ChunkingEngine(SemanticChunker(fake_embedder))

        chunks = asyncio.run(engine.run("Alpha. Beta.", "doc"))

        assert len(chunks) == 1
        assert chunks[0].sentence_count == 2

    def test_run_pages_indexes_across_pages(self, fake_embedder):
        engine = ChunkingEngine(SemanticChunker(fake_embedder))

        chunks = asyncio.run(engine.run_pages([(1, "Page one text."), (2, ""), (3, "Page three.")], "book"))

        assert [c.id for c in chunks] == ["book:0", "book:1"]
        assert [c.page_number for c in chunks] == [1, 3]

    def test_unexpected_error_wrapped(self):
        engine = ChunkingEngine(ExplodingChunker())

        with pytest.raises(ChunkingError) as exc_info:
            asyncio.run(engine.run("text", "doc"))

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_embedding_error_passes_through(self, make_embedder):
        embedder = make_embedder(fail_with=EmbeddingError("quota"))
        engine = ChunkingEngine.from_config(
            _chunking(strategy="semantic", semantic={"max_chunk_size": 20, "min_chunk_size": 0}),
            embedder=embedder,
        )

        with pytest.raises(EmbeddingError):
            asyncio.run(engine.run("First sentence here. Second sentence here.", "doc"))


class TestMetrics:
    def test_records_duration_and_count(self):
        metrics = MetricsCollector()
        engine = ChunkingEngine(FixedWindowChunker(), metrics=metrics)

        chunks = asyncio.run(engine.run("x" * 2500, "doc"))

        assert metrics.get_counter("chunks_created") == len(chunks)
        assert metrics.get_stats("chunking")["count"] == 1

    def test_failure_counts_error(self):
        metrics = MetricsCollector()
        engine = ChunkingEngine(ExplodingChunker(), metrics=metrics)

        with pytest.raises(ChunkingError):
            asyncio.run(engine.run("text", "doc"))

        assert metrics.get_counter("chunking_errors") == 1
        assert metrics.get_stats("chunking") is None
