# tests/conftest.py
"""
Root conftest - shared fakes and fixtures.

Test Tiers (for CI/CD optimization):
=====================================
- tier1: Pure logic tests - no I/O, no mocks (<30s)
         Run: pytest -m tier1
- tier2: Unit tests with mocks or fake transports - no real services
         Run: pytest -m "tier1 or tier2"

Feature Markers:
- postgres: Postgres-specific tests (pgvector index, connection manager)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import pytest

# =============================================================================
# Fake Providers
# =============================================================================


@dataclass
class FakeEmbedder:
    """
    Deterministic embedder.

    `vector_for` maps a text to its vector; the default gives every text
    the same vector. Every call is recorded.
    """

    vector_for: Callable[[str], List[float]] = lambda text: [1.0, 0.0, 0.0]
    calls: List[str] = field(default_factory=list)
    fail_with: Optional[Exception] = None

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.vector_for(text))

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        return [await self.embed(t) for t in texts]


@dataclass
class FakeChat:
    """Chat client returning a canned answer (or raising)."""

    response: str = "A hypothetical answer about the topic."
    fail_with: Optional[Exception] = None
    calls: List[list] = field(default_factory=list)

    async def chat(self, messages: List[Dict[str, str]]) -> str:
        self.calls.append(messages)
        if self.fail_with is not None:
            raise self.fail_with
        return self.response


@dataclass
class FakeRerankProvider:
    """Rerank provider returning a fixed (index, score) list."""

    ranking: List[tuple] = field(default_factory=list)
    fail_with: Optional[Exception] = None
    calls: List[tuple] = field(default_factory=list)

    async def rerank(self, query: str, documents: Sequence[str], top_n: Optional[int] = None):
        self.calls.append((query, list(documents), top_n))
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.ranking)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def make_embedder() -> Callable[..., FakeEmbedder]:
    """Factory for embedders with custom behaviour."""
    return FakeEmbedder


@pytest.fixture
def make_chat() -> Callable[..., FakeChat]:
    return FakeChat


@pytest.fixture
def make_rerank_provider() -> Callable[..., FakeRerankProvider]:
    return FakeRerankProvider


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep real credentials and config paths out of unit tests."""
    for var in (
        "OPENAI_API_KEY",
        "COHERE_API_KEY",
        "CO_API_KEY",
        "RAGFUSE_API_KEY",
        "RAGFUSE_CONFIG",
        "RAGFUSE_DATABASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)
