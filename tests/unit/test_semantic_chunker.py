# tests/unit/test_semantic_chunker.py
"""
Tests for SemanticChunker and HybridChunker.

Tests cover:
1. Short-circuit - text within max_chunk_size is one chunk, no embeddings
2. Topic boundaries - low similarity splits once min_chunk_size is reached
3. Size cap - chunks never grow past max_chunk_size
4. Failures - embedding errors surface as EmbeddingError
5. HybridChunker - sentence-count cutoff and failure fallback
"""

from __future__ import annotations

import asyncio

import pytest

from ragfuse.config.schema import SemanticChunkConfig
from ragfuse.core.exceptions import ConfigValidationError, EmbeddingError
from ragfuse.ingestion.chunking.plugins.semantic import HybridChunker, SemanticChunker
from ragfuse.ingestion.chunking.plugins.sentence import SentenceChunker

pytestmark = pytest.mark.tier2

# Sentences starting with A or B share a topic; C is unrelated.
TOPIC_VECTORS = {"A": [1.0, 0.0], "B": [1.0, 0.0], "C": [0.0, 1.0]}


def by_topic(text: str) -> list[float]:
    return TOPIC_VECTORS[text[0]]


def sentence(letter: str, length: int) -> str:
    """A sentence of exactly `length` characters starting with `letter`."""
    return letter + "x" * (length - 2) + "."


def _config(**overrides) -> SemanticChunkConfig:
    return SemanticChunkConfig.build(overrides)


# ---------------------------------------------------------------------------
# SemanticChunker
# ---------------------------------------------------------------------------


class TestSemanticChunker:
    """Tests for greedy similarity-based grouping."""

    def test_short_text_single_chunk_without_embeddings(self, make_embedder):
        embedder = make_embedder()
        chunker = SemanticChunker(embedder, _config())

        chunks = asyncio.run(chunker.chunk_text("First point. Second point.", {"doc_id": "doc"}))

        assert len(chunks) == 1
        assert chunks[0].content == "First point. Second point."
        assert chunks[0].similarity == 1.0
        assert chunks[0].sentence_count == 2
        assert embedder.calls == []

    def test_empty_text(self, make_embedder):
        chunker = SemanticChunker(make_embedder(), _config())

        assert asyncio.run(chunker.chunk_text("  ", {"doc_id": "doc"})) == []

    # A 3000-character document: 900 + 900 + 1198 characters plus two joining
    # spaces. max_chunk_size must stay below 3000 to avoid the single-chunk
    # shortcut, and at 2998 (the three sentences without spaces) the size cap
    # never triggers, so only similarity can split.
    TOPIC_SHIFT_MAX = 2998

    def _topic_shift_document(self) -> tuple[str, str, str, str]:
        s1, s2, s3 = sentence("A", 900), sentence("B", 900), sentence("C", 1198)
        return s1, s2, s3, " ".join([s1, s2, s3])

    def test_topic_shift_starts_new_chunk(self, make_embedder):
        """Two related sentences stay together; the unrelated one is split off."""
        s1, s2, s3, text = self._topic_shift_document()
        config = _config(max_chunk_size=self.TOPIC_SHIFT_MAX, min_chunk_size=200, similarity_threshold=0.75)
        chunker = SemanticChunker(make_embedder(vector_for=by_topic), config)

        chunks = asyncio.run(chunker.chunk_text(text, {"doc_id": "doc-1"}))

        assert len(text) == 3000
        assert len(chunks) == 2
        assert chunks[0].content == f"{s1} {s2}"
        assert chunks[0].sentence_count == 2
        assert chunks[0].similarity == pytest.approx(1.0)
        assert chunks[1].content == s3
        assert chunks[1].sentence_count == 1
        assert [c.id for c in chunks] == ["doc-1:0", "doc-1:1"]

    def test_topic_shift_document_stays_whole_without_threshold(self, make_embedder):
        """Same document, threshold 0.0: no split, so the break above came from similarity."""
        _, _, _, text = self._topic_shift_document()
        config = _config(max_chunk_size=self.TOPIC_SHIFT_MAX, min_chunk_size=200, similarity_threshold=0.0)
        chunker = SemanticChunker(make_embedder(vector_for=by_topic), config)

        chunks = asyncio.run(chunker.chunk_text(text, {"doc_id": "doc-1"}))

        assert len(chunks) == 1
        assert chunks[0].sentence_count == 3

    def test_size_cap_splits_related_sentences(self, make_embedder):
        sentences = [sentence("A", 100) for _ in range(5)]
        config = _config(max_chunk_size=250, min_chunk_size=0, similarity_threshold=0.0)
        chunker = SemanticChunker(make_embedder(vector_for=by_topic), config)

        chunks = asyncio.run(chunker.chunk_text(" ".join(sentences), {"doc_id": "doc"}))

        assert [c.sentence_count for c in chunks] == [2, 2, 1]
        assert all(len(c.content) <= 250 for c in chunks)

    def test_min_chunk_size_blocks_early_split(self, make_embedder):
        """An unrelated sentence is absorbed while the chunk is still too small."""
        sentences = [sentence("A", 100), sentence("C", 100), sentence("A", 100), sentence("C", 100)]
        config = _config(max_chunk_size=350, min_chunk_size=300, similarity_threshold=0.75)
        chunker = SemanticChunker(make_embedder(vector_for=by_topic), config)

        chunks = asyncio.run(chunker.chunk_text(" ".join(sentences), {"doc_id": "doc"}))

        assert chunks[0].sentence_count == 3
        assert chunks[0].similarity < 0.75

    def test_every_sentence_embedded_in_batches(self, make_embedder):
        sentences = [sentence("A", 100) for _ in range(7)]
        embedder = make_embedder(vector_for=by_topic)
        chunker = SemanticChunker(embedder, _config(max_chunk_size=300, min_chunk_size=0, embed_batch_size=2))

        asyncio.run(chunker.chunk_text(" ".join(sentences), {"doc_id": "doc"}))

        assert embedder.calls == sentences

    def test_embedding_failure_raises_embedding_error(self, make_embedder):
        embedder = make_embedder(fail_with=RuntimeError("provider down"))
        chunker = SemanticChunker(embedder, _config(max_chunk_size=150, min_chunk_size=0))
        text = " ".join(sentence("A", 100) for _ in range(3))

        with pytest.raises(EmbeddingError):
            asyncio.run(chunker.chunk_text(text, {"doc_id": "doc"}))

    def test_invalid_overrides_rejected(self, make_embedder):
        chunker = SemanticChunker(make_embedder(), _config())

        with pytest.raises(ConfigValidationError):
            asyncio.run(chunker.chunk_text("Some text.", {"doc_id": "doc"}, overrides={"similarity_threshold": 1.5}))

    def test_start_index_and_page(self, make_embedder):
        chunker = SemanticChunker(make_embedder(), _config())

        chunks = asyncio.run(chunker.chunk_text("One page.", {"doc_id": "doc"}, start_index=3, page_number=7))

        assert chunks[0].id == "doc:3"
        assert chunks[0].page_number == 7
        assert chunks[0].metadata["page_number"] == 7

    def test_chunker_id(self, make_embedder):
        assert SemanticChunker(make_embedder(), _config()).chunker_id == "semantic:1500:200:0.75:3"


# ---------------------------------------------------------------------------
# HybridChunker
# ---------------------------------------------------------------------------


class TestHybridChunker:
    """Tests for the semantic/sentence fallback policy."""

    def test_uses_semantic_when_affordable(self, make_embedder):
        hybrid = HybridChunker(SemanticChunker(make_embedder(), _config()))

        chunks = asyncio.run(hybrid.chunk_text("Short text. Two sentences.", {"doc_id": "doc"}))

        assert len(chunks) == 1
        assert chunks[0].similarity == 1.0

    def test_too_many_sentences_skips_embeddings(self, make_embedder):
        embedder = make_embedder()
        hybrid = HybridChunker(
            SemanticChunker(embedder, _config(max_chunk_size=50, min_chunk_size=0)),
            fallback=SentenceChunker(max_chunk_size=1500),
            max_semantic_sentences=3,
        )
        text = " ".join(f"Sentence number {i}." for i in range(5))

        chunks = asyncio.run(hybrid.chunk_text(text, {"doc_id": "doc"}))

        assert embedder.calls == []
        assert len(chunks) == 1
        assert chunks[0].sentence_count == 5
        assert chunks[0].similarity == 0.0

    def test_semantic_failure_falls_back(self, make_embedder):
        embedder = make_embedder(fail_with=RuntimeError("rate limited"))
        hybrid = HybridChunker(
            SemanticChunker(embedder, _config(max_chunk_size=150, min_chunk_size=0)),
            fallback=SentenceChunker(max_chunk_size=250),
        )
        text = " ".join(sentence("A", 100) for _ in range(3))

        chunks = asyncio.run(hybrid.chunk_text(text, {"doc_id": "doc"}))

        assert [c.sentence_count for c in chunks] == [2, 1]
        assert all(c.similarity == 0.0 for c in chunks)

    def test_empty_text(self, make_embedder):
        hybrid = HybridChunker(SemanticChunker(make_embedder(), _config()))

        assert asyncio.run(hybrid.chunk_text("", {"doc_id": "doc"})) == []

    def test_chunker_id(self, make_embedder):
        hybrid = HybridChunker(SemanticChunker(make_embedder(), _config()), max_semantic_sentences=40)

        assert hybrid.chunker_id == "hybrid:40:semantic:1500:200:0.75:3"
