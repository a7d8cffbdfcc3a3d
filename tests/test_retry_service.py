"""Tests for the retry policy and combinator."""

import pytest

from app.services.retry_service import (
    NonRetryableError,
    RetryError,
    RetryPolicy,
    RetryStrategy,
    retry_with_backoff,
)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class Flaky:
    """Fails ``failures`` times, then returns ``result``."""

    def __init__(self, failures, result="ok", error=RuntimeError):
        self.failures = failures
        self.result = result
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return self.result


class TestRetryPolicy:
    def test_fixed_delay(self):
        policy = RetryPolicy(strategy=RetryStrategy.FIXED_DELAY, base_delay=5.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [5.0, 5.0, 5.0]

    def test_exponential_backoff(self):
        policy = RetryPolicy(strategy=RetryStrategy.EXPONENTIAL_BACKOFF, base_delay=2.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_retry_on_restricts_error_types(self):
        policy = RetryPolicy(retry_on=(ConnectionError,))
        assert policy.should_retry(ConnectionError("down"))
        assert not policy.should_retry(ValueError("bad"))

    def test_non_retryable_errors_are_never_retried(self):
        assert not RetryPolicy().should_retry(NonRetryableError("stop"))

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestRetryWithBackoff:
    async def test_succeeds_after_two_failures(self):
        func = Flaky(failures=2)
        sleep = RecordingSleep()

        result = await retry_with_backoff(func, RetryPolicy(max_attempts=3, base_delay=5.0), sleep=sleep)

        assert result == "ok"
        assert func.calls == 3
        assert sleep.delays == [5.0, 5.0]

    async def test_first_success_stops_retrying(self):
        func = Flaky(failures=0)
        sleep = RecordingSleep()

        await retry_with_backoff(func, RetryPolicy(max_attempts=3), sleep=sleep)

        assert func.calls == 1
        assert sleep.delays == []

    async def test_exhausted_attempts_keep_last_error(self):
        func = Flaky(failures=5)

        with pytest.raises(RetryError) as exc_info:
            await retry_with_backoff(func, RetryPolicy(max_attempts=3), sleep=RecordingSleep())

        assert exc_info.value.attempts == 3
        assert str(exc_info.value) == "failure 3"
        assert isinstance(exc_info.value.last_error, RuntimeError)
        assert func.calls == 3

    async def test_non_retryable_error_propagates_unchanged(self):
        func = Flaky(failures=1, error=NonRetryableError)

        with pytest.raises(NonRetryableError, match="failure 1"):
            await retry_with_backoff(func, RetryPolicy(max_attempts=3), sleep=RecordingSleep())

        assert func.calls == 1

    async def test_attempts_are_logged_with_their_number(self, caplog):
        func = Flaky(failures=1)

        with caplog.at_level("WARNING"):
            await retry_with_backoff(func, RetryPolicy(max_attempts=3), operation="apply", sleep=RecordingSleep())

        assert "apply failed (attempt 1/3)" in caplog.text
