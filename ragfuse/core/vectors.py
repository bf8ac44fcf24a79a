# ragfuse/core/vectors.py
"""Vector math shared by chunking and the local index."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ragfuse.core.exceptions import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity: dot(a, b) / (|a| * |b|).

    Raises:
        DimensionMismatchError: If the vectors differ in length.

    A zero vector has no direction; its similarity to anything is 0.0.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0

    return float(np.dot(va, vb) / norm)


def cosine_similarities(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of one query vector against each row of a matrix.

    Rows with zero norm score 0.0.
    """
    if matrix.size == 0:
        return np.zeros(0, dtype=np.float64)

    q = np.asarray(query, dtype=np.float64)
    if matrix.shape[1] != q.shape[0]:
        raise DimensionMismatchError(matrix.shape[1], q.shape[0])

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q

    out = np.zeros(matrix.shape[0], dtype=np.float64)
    nonzero = norms > 0
    out[nonzero] = dots[nonzero] / norms[nonzero]
    return out


__all__ = ["cosine_similarity", "cosine_similarities"]
