# ragfuse/retrieval/fusion.py
"""
Reciprocal Rank Fusion.

    fused(d) = sum over rankings r containing d of 1 / (k + rank_r(d))

Ranks are 1-based. Only positions matter, so scores from rankers on
different scales (cosine similarity, keyword counts) combine without
normalisation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

DEFAULT_RRF_K = 60


@dataclass(frozen=True)
class RankedResult:
    """One entry of a single ranker's output."""

    chunk_id: str
    rank: int
    score: float


@dataclass(frozen=True)
class FusedResult:
    """One entry of the fused ranking."""

    chunk_id: str
    fused_score: float
    display_similarity: Optional[float] = None


def to_ranked(chunk_ids: Iterable[str], scores: Optional[Iterable[float]] = None) -> List[RankedResult]:
    """Assign 1-based ranks to ids in the order given."""
    ids = list(chunk_ids)
    values = list(scores) if scores is not None else [0.0] * len(ids)
    return [RankedResult(chunk_id=cid, rank=i, score=s) for i, (cid, s) in enumerate(zip(ids, values), start=1)]


def reciprocal_rank_fusion(
    rankings: Sequence[Sequence[RankedResult]],
    k: int = DEFAULT_RRF_K,
    display_similarity: Optional[Mapping[str, Optional[float]]] = None,
) -> List[FusedResult]:
    """
    Fuse several rankings into one.

    Args:
        rankings: Rankings in priority order. An id repeated inside one
            ranking only counts at its best rank.
        k: RRF constant
        display_similarity: Optional id -> similarity to attach to results

    Returns:
        One FusedResult per distinct id, fused score descending. Ties keep
        first-seen order (earlier rankings first).
    """
    if k < 1:
        raise ValueError(f"RRF k must be >= 1, got {k}")

    scores: Dict[str, float] = {}

    for ranking in rankings:
        counted: set[str] = set()
        for item in ranking:
            if item.chunk_id in counted:
                continue
            counted.add(item.chunk_id)
            scores[item.chunk_id] = scores.get(item.chunk_id, 0.0) + 1.0 / (k + item.rank)

    # dicts keep insertion order and sorted() is stable
    ordered = sorted(scores.items(), key=lambda pair: pair[1], reverse=True)

    similarities = display_similarity or {}
    return [
        FusedResult(chunk_id=cid, fused_score=score, display_similarity=similarities.get(cid))
        for cid, score in ordered
    ]


__all__ = ["DEFAULT_RRF_K", "RankedResult", "FusedResult", "to_ranked", "reciprocal_rank_fusion"]
