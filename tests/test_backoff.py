"""
Tests for retry with exponential backoff.
"""

import asyncio
import random

import pytest

from mindmend_relay.errors import RateLimitedError, UpstreamError
from mindmend_relay.services import BackoffInvoker


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class Operation:
    """Async operation failing with the given errors, then returning ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_returns_first_success_without_sleeping():
    sleep = RecordingSleep()
    invoker = BackoffInvoker(sleep=sleep)
    operation = Operation([])

    assert asyncio.run(invoker.invoke(operation)) == "ok"
    assert operation.calls == 1
    assert sleep.delays == []


def test_retries_rate_limits_until_success():
    sleep = RecordingSleep()
    invoker = BackoffInvoker(max_attempts=3, sleep=sleep)
    operation = Operation([RateLimitedError(), RateLimitedError()])

    assert asyncio.run(invoker.invoke(operation)) == "ok"
    assert operation.calls == 3
    assert len(sleep.delays) == 2


def test_gives_up_after_max_attempts_and_reraises():
    sleep = RecordingSleep()
    invoker = BackoffInvoker(max_attempts=3, base_delay=1.0, max_jitter=1.0, sleep=sleep)
    operation = Operation([RateLimitedError() for _ in range(5)])

    with pytest.raises(RateLimitedError):
        asyncio.run(invoker.invoke(operation))

    assert operation.calls == 3
    # Waits before attempts 2 and 3 only, with at least 1s then 2s.
    assert len(sleep.delays) == 2
    assert 1.0 <= sleep.delays[0] <= 2.0
    assert 2.0 <= sleep.delays[1] <= 3.0
    assert sum(sleep.delays) >= 3.0


def test_other_errors_are_not_retried():
    sleep = RecordingSleep()
    invoker = BackoffInvoker(max_attempts=3, sleep=sleep)
    operation = Operation([UpstreamError("boom", 500)])

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(invoker.invoke(operation))

    assert not isinstance(exc_info.value, RateLimitedError)
    assert operation.calls == 1
    assert sleep.delays == []


def test_per_call_attempt_bound():
    sleep = RecordingSleep()
    invoker = BackoffInvoker(max_attempts=3, sleep=sleep)
    operation = Operation([RateLimitedError() for _ in range(4)])

    assert asyncio.run(invoker.invoke(operation, max_attempts=5)) == "ok"
    assert operation.calls == 5


def test_on_retry_reports_attempts():
    attempts = []
    invoker = BackoffInvoker(max_attempts=3, base_delay=1.0, max_jitter=0.0, sleep=RecordingSleep())
    operation = Operation([RateLimitedError(), RateLimitedError()])

    asyncio.run(invoker.invoke(operation, on_retry=attempts.append))

    assert [a.attempt for a in attempts] == [0, 1]
    assert [a.delay for a in attempts] == [1.0, 2.0]


def test_delay_grows_exponentially_with_bounded_jitter():
    invoker = BackoffInvoker(base_delay=1.0, max_jitter=1.0, rng=random.Random(3))
    for attempt in range(4):
        delay = invoker.compute_delay(attempt)
        assert 2**attempt <= delay <= 2**attempt + 1.0


def test_retry_after_hint_wins_when_longer():
    invoker = BackoffInvoker(base_delay=1.0, max_jitter=0.0, max_delay=30.0)
    assert invoker.compute_delay(0, retry_after=10.0) == 10.0
    assert invoker.compute_delay(2, retry_after=0.5) == 4.0


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        BackoffInvoker(max_attempts=0)


def test_huge_retry_after_hint_is_clamped():
    invoker = BackoffInvoker(base_delay=1.0, max_jitter=0.0, max_delay=8.0)

    assert invoker.compute_delay(0, retry_after=3600.0) == 8.0
    # The computed schedule is never shortened by the cap.
    assert invoker.compute_delay(4, retry_after=3600.0) == 16.0


def test_rate_limit_hints_do_not_stretch_total_wait():
    sleep = RecordingSleep()
    invoker = BackoffInvoker(
        max_attempts=3, base_delay=1.0, max_jitter=1.0, max_delay=8.0, sleep=sleep
    )
    operation = Operation([RateLimitedError(retry_after=3600.0) for _ in range(3)])

    with pytest.raises(RateLimitedError):
        asyncio.run(invoker.invoke(operation))

    assert sleep.delays == [8.0, 8.0]


def test_zero_attempts_per_call_is_rejected():
    operation = Operation([])

    with pytest.raises(ValueError):
        asyncio.run(BackoffInvoker(sleep=RecordingSleep()).invoke(operation, max_attempts=0))

    assert operation.calls == 0
