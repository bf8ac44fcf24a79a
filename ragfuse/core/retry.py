# ragfuse/core/retry.py
"""
Retry, timeout and circuit-breaker helpers for provider calls.

Nothing in the retrieval core retries on its own. Provider clients
(embeddings, chat) accept an optional RetryPolicy / CircuitBreaker and
wrap their HTTP calls with them.

Usage:
    policy = RetryPolicy(max_retries=3)
    vector = await with_retry(lambda: client.embed(text), policy)
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import httpx

from ragfuse.core.http import APIConnectionError, APIError, APITimeoutError, RateLimitError
from ragfuse.logging.logger import get_logger
from ragfuse.logging.tags import RETRY

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
RETRYABLE_MESSAGE_MARKERS = ("rate limit", "timeout", "timed out", "econnreset", "503", "502", "429")


class RetryableError(Exception):
    """Raise this from a wrapped call to force a retry."""

    pass


class CircuitOpenError(RuntimeError):
    """Raised when a call is rejected because the circuit is open."""

    pass


def is_retryable(exc: BaseException) -> bool:
    """
    Default retry predicate.

    Retries rate limits, timeouts, gateway errors and connection failures.
    Authentication and validation errors are never retried.
    """
    if isinstance(exc, RetryableError):
        return True
    if isinstance(exc, (RateLimitError, APITimeoutError, APIConnectionError)):
        return True
    if isinstance(exc, APIError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError, asyncio.TimeoutError)):
        return True

    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff settings.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds
        backoff_multiplier: Growth factor between delays
        jitter: Relative jitter applied to each grown delay (0.1 = ±10%)
        retryable: Predicate deciding whether an exception is retried
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.1
    retryable: Callable[[BaseException], bool] = field(default=is_retryable, compare=False)

    def next_delay(self, delay: float) -> float:
        factor = self.backoff_multiplier * (1.0 + random.uniform(-self.jitter, self.jitter))
        return min(delay * factor, self.max_delay)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await fn() with exponential backoff on retryable failures.

    Non-retryable errors propagate immediately. After the last attempt
    the last error propagates unchanged.
    """
    policy = policy or RetryPolicy()
    delay = policy.initial_delay

    for attempt in range(policy.max_retries + 1):
        try:
            return await fn()
        except Exception as exc:
            if not policy.retryable(exc) or attempt == policy.max_retries:
                raise

            logger.warning(f"{RETRY} Retry attempt {attempt + 1}/{policy.max_retries} after error: {exc}")
            await sleep(delay)
            delay = policy.next_delay(delay)

    raise AssertionError("unreachable")


async def with_timeout(
    fn: Callable[[], Awaitable[T]],
    timeout: float,
    message: str = "Operation timed out",
) -> T:
    """Await fn() but give up after `timeout` seconds with asyncio.TimeoutError."""
    try:
        return await asyncio.wait_for(fn(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise asyncio.TimeoutError(message) from exc


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """
    Stops calling a failing provider until a cool-down has passed.

    - closed: calls go through; consecutive failures are counted
    - open: calls are rejected with CircuitOpenError
    - half-open: after reset_timeout one trial call is let through;
      success closes the circuit, failure re-opens it

    One instance guards one provider; construct it explicitly and pass it
    to the client that needs it.
    """

    def __init__(
        self,
        threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._failures = 0
        self._last_failure: Optional[float] = None
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._state == CircuitState.OPEN:
            elapsed = self._clock() - (self._last_failure or 0.0)
            if elapsed >= self.reset_timeout:
                self._state = CircuitState.HALF_OPEN
            else:
                raise CircuitOpenError("Circuit breaker is open")

        try:
            result = await fn()
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        self._failures = 0
        self._state = CircuitState.CLOSED

    def _on_failure(self) -> None:
        self._failures += 1
        self._last_failure = self._clock()

        if self._state == CircuitState.HALF_OPEN or self._failures >= self.threshold:
            self._state = CircuitState.OPEN
            logger.error(f"{RETRY} Circuit breaker opened after {self._failures} failures")

    def reset(self) -> None:
        self._failures = 0
        self._last_failure = None
        self._state = CircuitState.CLOSED


# =============================================================================
# Batching
# =============================================================================


async def batch_process(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    batch_size: int = 10,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> list[R]:
    """
    Apply an async fn to every item, one batch at a time.

    Items within a batch run concurrently; batches run sequentially.
    Output order matches input order.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    results: list[R] = []
    total = len(items)

    for start in range(0, total, batch_size):
        batch = items[start : start + batch_size]
        results.extend(await asyncio.gather(*(fn(item) for item in batch)))

        if on_progress is not None:
            on_progress(min(start + batch_size, total), total)

    return results


__all__ = [
    "RetryableError",
    "CircuitOpenError",
    "RetryPolicy",
    "is_retryable",
    "with_retry",
    "with_timeout",
    "CircuitState",
    "CircuitBreaker",
    "batch_process",
]
