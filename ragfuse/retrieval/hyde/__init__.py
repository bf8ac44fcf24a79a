# ragfuse/retrieval/hyde/__init__.py
"""HyDE query embedding."""

from ragfuse.retrieval.hyde.generator import DualEmbedding, HydeQueryEmbedder

__all__ = ["DualEmbedding", "HydeQueryEmbedder"]
