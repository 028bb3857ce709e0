"""
Retry Utility Tests
"""
import random

import pytest
from sqlalchemy.exc import OperationalError

from hackjudge.core.retry import RetryExhaustedError, backoff_delay, with_retry


def busy_error():
    return OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


class Recorder:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestBackoffDelay:

    def test_grows_with_attempt(self):
        rng = random.Random(7)
        for attempt in range(1, 6):
            delay = backoff_delay(attempt, 0.01, rng)
            low = 0.01 * (2 ** (attempt - 1)) * 0.5
            high = 0.01 * (2 ** (attempt - 1)) * 1.5
            assert low <= delay < high

    def test_zero_base_delay(self):
        assert backoff_delay(3, 0.0) == 0.0


class TestWithRetry:

    async def test_returns_first_success(self):
        sleep = Recorder()

        async def op():
            return "ok"

        assert await with_retry(op, sleep=sleep) == "ok"
        assert sleep.delays == []

    async def test_retries_transient_errors(self):
        sleep = Recorder()
        calls = []

        async def op():
            calls.append(1)
            if len(calls) < 3:
                raise busy_error()
            return len(calls)

        assert await with_retry(op, max_attempts=5, base_delay=0.01, sleep=sleep) == 3
        assert len(sleep.delays) == 2

    async def test_gives_up_at_ceiling(self):
        sleep = Recorder()
        calls = []

        async def op():
            calls.append(1)
            raise busy_error()

        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(op, max_attempts=4, base_delay=0.01, sleep=sleep)

        assert len(calls) == 4
        assert len(sleep.delays) == 3  # no sleep after the last attempt
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.last_error, OperationalError)

    async def test_other_errors_propagate_immediately(self):
        sleep = Recorder()
        calls = []

        async def op():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await with_retry(op, max_attempts=5, sleep=sleep)
        assert len(calls) == 1

    async def test_custom_retry_on(self):
        sleep = Recorder()
        calls = []

        async def op():
            calls.append(1)
            if len(calls) == 1:
                raise KeyError("once")
            return "done"

        assert await with_retry(op, retry_on=(KeyError,), sleep=sleep) == "done"

    async def test_rejects_zero_attempts(self):
        async def op():
            return None

        with pytest.raises(ValueError):
            await with_retry(op, max_attempts=0)
