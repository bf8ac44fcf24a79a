# tests/unit/test_retry.py
"""
Tests for ragfuse.core.retry.

Tests cover:
1. is_retryable - which failures are worth retrying
2. with_retry - attempts, backoff delays, non-retryable passthrough
3. with_timeout - timeout message
4. CircuitBreaker - closed / open / half-open transitions
5. batch_process - ordering, batching and progress
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from ragfuse.core.http import APIError, AuthenticationError, RateLimitError
from ragfuse.core.retry import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    RetryableError,
    RetryPolicy,
    batch_process,
    is_retryable,
    with_retry,
    with_timeout,
)

pytestmark = pytest.mark.tier1


class Flaky:
    """Fails `failures` times with `error`, then returns `value`."""

    def __init__(self, failures: int, error: Exception, value: str = "ok"):
        self.failures = failures
        self.error = error
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# is_retryable
# ---------------------------------------------------------------------------


class TestIsRetryable:
    @pytest.mark.parametrize(
        "exc",
        [
            RetryableError("again"),
            RateLimitError(message="slow down", status_code=429),
            APIError(message="bad gateway", status_code=502),
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("slow"),
            asyncio.TimeoutError(),
            RuntimeError("ECONNRESET by peer"),
        ],
    )
    def test_retryable(self, exc):
        assert is_retryable(exc)

    @pytest.mark.parametrize(
        "exc",
        [
            AuthenticationError(message="bad key", status_code=401),
            APIError(message="bad request", status_code=400),
            ValueError("invalid input"),
        ],
    )
    def test_not_retryable(self, exc):
        assert not is_retryable(exc)


# ---------------------------------------------------------------------------
# with_retry
# ---------------------------------------------------------------------------


class TestWithRetry:
    def test_succeeds_after_transient_failures(self):
        fn = Flaky(2, RetryableError("transient"))
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=3, initial_delay=1.0, jitter=0.0)

        result = asyncio.run(with_retry(fn, policy, sleep=sleep))

        assert result == "ok"
        assert fn.calls == 3
        assert sleep.delays == [1.0, 2.0]

    def test_gives_up_after_max_retries(self):
        fn = Flaky(10, RetryableError("still failing"))
        sleep = RecordingSleep()

        with pytest.raises(RetryableError):
            asyncio.run(with_retry(fn, RetryPolicy(max_retries=2, jitter=0.0), sleep=sleep))

        assert fn.calls == 3
        assert len(sleep.delays) == 2

    def test_non_retryable_raises_immediately(self):
        fn = Flaky(1, ValueError("bad input"))
        sleep = RecordingSleep()

        with pytest.raises(ValueError):
            asyncio.run(with_retry(fn, RetryPolicy(), sleep=sleep))

        assert fn.calls == 1
        assert sleep.delays == []

    def test_delay_capped(self):
        fn = Flaky(4, RetryableError("x"))
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=4, initial_delay=10.0, max_delay=15.0, jitter=0.0)

        asyncio.run(with_retry(fn, policy, sleep=sleep))

        assert sleep.delays == [10.0, 15.0, 15.0, 15.0]

    def test_custom_predicate(self):
        fn = Flaky(1, KeyError("k"))
        policy = RetryPolicy(retryable=lambda exc: isinstance(exc, KeyError), jitter=0.0)

        assert asyncio.run(with_retry(fn, policy, sleep=RecordingSleep())) == "ok"

    def test_jitter_stays_in_bounds(self):
        policy = RetryPolicy(backoff_multiplier=2.0, jitter=0.1)

        for _ in range(50):
            assert 1.8 <= policy.next_delay(1.0) <= 2.2


class TestWithTimeout:
    def test_returns_result(self):
        async def fast():
            return 42

        assert asyncio.run(with_timeout(fast, timeout=1.0)) == 42

    def test_times_out_with_message(self):
        async def slow():
            await asyncio.sleep(1.0)

        with pytest.raises(asyncio.TimeoutError, match="embedding took too long"):
            asyncio.run(with_timeout(slow, timeout=0.01, message="embedding took too long"))


# ---------------------------------------------------------------------------
# CircuitBreaker
# ---------------------------------------------------------------------------


class TestCircuitBreaker:
    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(threshold=2, reset_timeout=60.0, clock=FakeClock())
        failing = Flaky(100, RuntimeError("down"))

        for _ in range(2):
            with pytest.raises(RuntimeError):
                asyncio.run(breaker.call(failing))

        assert breaker.state == CircuitState.OPEN

        with pytest.raises(CircuitOpenError):
            asyncio.run(breaker.call(failing))
        assert failing.calls == 2

    def test_half_open_success_closes(self):
        clock = FakeClock()
        breaker = CircuitBreaker(threshold=1, reset_timeout=30.0, clock=clock)

        with pytest.raises(RuntimeError):
            asyncio.run(breaker.call(Flaky(1, RuntimeError("down"))))
        assert breaker.state == CircuitState.OPEN

        clock.now = 31.0
        assert asyncio.run(breaker.call(Flaky(0, RuntimeError("unused")))) == "ok"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 0

    def test_half_open_failure_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(threshold=3, reset_timeout=10.0, clock=clock)
        failing = Flaky(100, RuntimeError("down"))

        for _ in range(3):
            with pytest.raises(RuntimeError):
                asyncio.run(breaker.call(failing))

        clock.now = 10.0
        with pytest.raises(RuntimeError):
            asyncio.run(breaker.call(failing))

        assert breaker.state == CircuitState.OPEN

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(threshold=3, clock=FakeClock())

        with pytest.raises(RuntimeError):
            asyncio.run(breaker.call(Flaky(1, RuntimeError("once"))))
        assert breaker.failures == 1

        asyncio.run(breaker.call(Flaky(0, RuntimeError("unused"))))
        assert breaker.failures == 0

    def test_reset(self):
        breaker = CircuitBreaker(threshold=1, clock=FakeClock())
        with pytest.raises(RuntimeError):
            asyncio.run(breaker.call(Flaky(1, RuntimeError("down"))))

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 0


# ---------------------------------------------------------------------------
# batch_process
# ---------------------------------------------------------------------------


class TestBatchProcess:
    def test_preserves_order_and_reports_progress(self):
        progress = []

        async def double(x):
            await asyncio.sleep(0.001 * (5 - x))
            return x * 2

        result = asyncio.run(
            batch_process([1, 2, 3, 4, 5], double, batch_size=2, on_progress=lambda d, t: progress.append((d, t)))
        )

        assert result == [2, 4, 6, 8, 10]
        assert progress == [(2, 5), (4, 5), (5, 5)]

    def test_empty(self):
        async def identity(x):
            return x

        assert asyncio.run(batch_process([], identity)) == []

    def test_invalid_batch_size(self):
        async def identity(x):
            return x

        with pytest.raises(ValueError):
            asyncio.run(batch_process([1], identity, batch_size=0))
