# ragfuse/core/metrics.py
"""
In-process timing and counter metrics.

A MetricsCollector is constructed explicitly and handed to the components
that should report into it (HybridRanker, ChunkingEngine). There is no
process-wide instance.

Usage:
    metrics = MetricsCollector()
    async with metrics.measure("search"):
        results = await ranker.search(vector, "query")
    metrics.get_stats("search")
"""

from __future__ import annotations

import math
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import METRICS

logger = get_logger(__name__)

DEFAULT_MAX_SAMPLES = 1000


def _percentile(sorted_values: List[float], pct: float) -> float:
    # nearest-rank on an ascending list
    idx = max(0, math.ceil(pct / 100.0 * len(sorted_values)) - 1)
    return sorted_values[min(idx, len(sorted_values) - 1)]


class MetricsCollector:
    """
    Records durations (milliseconds) and counters by name.

    Only the most recent `max_samples` durations are kept per name.
    """

    def __init__(
        self,
        max_samples: int = DEFAULT_MAX_SAMPLES,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if max_samples < 1:
            raise ValueError(f"max_samples must be >= 1, got {max_samples}")

        self.max_samples = max_samples
        self._clock = clock
        self._durations: Dict[str, List[float]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)

    def record_duration(self, name: str, duration_ms: float) -> None:
        samples = self._durations[name]
        samples.append(duration_ms)
        if len(samples) > self.max_samples:
            del samples[: len(samples) - self.max_samples]

    def increment(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_stats(self, name: str) -> Optional[Dict[str, float]]:
        """
        Summary statistics for a duration series.

        Returns:
            Dict with count, min, max, avg, p50, p95, p99 (milliseconds),
            or None if nothing was recorded under this name.
        """
        samples = self._durations.get(name)
        if not samples:
            return None

        ordered = sorted(samples)
        return {
            "count": len(ordered),
            "min": ordered[0],
            "max": ordered[-1],
            "avg": sum(ordered) / len(ordered),
            "p50": _percentile(ordered, 50),
            "p95": _percentile(ordered, 95),
            "p99": _percentile(ordered, 99),
        }

    def snapshot(self) -> Dict[str, Dict]:
        """All duration stats and counters in one dict."""
        return {
            "durations": {name: self.get_stats(name) for name in self._durations if self._durations[name]},
            "counters": dict(self._counters),
        }

    def reset(self) -> None:
        self._durations.clear()
        self._counters.clear()

    @asynccontextmanager
    async def measure(self, name: str) -> AsyncIterator[None]:
        """
        Time the enclosed block.

        On success the duration is recorded under `name`; on failure the
        `{name}_errors` counter is incremented and the exception propagates.
        """
        start = self._clock()
        try:
            yield
        except Exception:
            self.increment(f"{name}_errors")
            logger.debug(f"{METRICS} {name} failed after {(self._clock() - start) * 1000:.1f}ms")
            raise

        self.record_duration(name, (self._clock() - start) * 1000.0)


__all__ = ["MetricsCollector"]
