"""Async retry policies and the combinator that applies them.

Used on both sides of the queue: the origin service retries broker writes
with exponential backoff, and the automation worker retries platform
automation with a fixed delay.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type
from enum import Enum


logger = logging.getLogger(__name__)


class RetryStrategy(str, Enum):
    """Retry strategy types."""
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    FIXED_DELAY = "fixed_delay"


class RetryableError(Exception):
    """Base class for errors that are worth another attempt."""


class NonRetryableError(Exception):
    """Base class for errors that must fail immediately."""


def _default_is_retryable(error: BaseException) -> bool:
    return not isinstance(error, NonRetryableError)


@dataclass
class RetryPolicy:
    """How many times to try, how long to wait, and which errors qualify.

    Args:
        max_attempts: Total attempts including the first one
        strategy: Delay growth between attempts
        base_delay: Delay before the second attempt, in seconds
        backoff_multiplier: Growth factor for exponential backoff
        retry_on: Only these exception types are retried, when given
        is_retryable: Final say on whether an error gets another attempt
    """
    max_attempts: int = 3
    strategy: RetryStrategy = RetryStrategy.FIXED_DELAY
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    retry_on: Optional[Tuple[Type[BaseException], ...]] = None
    is_retryable: Callable[[BaseException], bool] = field(default=_default_is_retryable)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def should_retry(self, error: BaseException) -> bool:
        if self.retry_on is not None and not isinstance(error, self.retry_on):
            return False
        return self.is_retryable(error)

    def delay_for(self, attempt: int) -> float:
        """Delay after a failed attempt (1-based)."""
        if self.strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
            return self.base_delay * (self.backoff_multiplier ** (attempt - 1))
        return self.base_delay


class RetryError(Exception):
    """Raised when every attempt failed; wraps the last error."""

    def __init__(self, last_error: BaseException, attempts: int):
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts


async def retry_with_backoff(
    func: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    operation: Optional[str] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Await ``func()`` until it succeeds or the policy gives up.

    Args:
        func: Zero-argument coroutine factory, called once per attempt
        policy: Retry policy to apply
        operation: Name used in log messages
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        Whatever ``func`` returns on the first successful attempt

    Raises:
        RetryError: all attempts failed with retryable errors
        Exception: a non-retryable error, re-raised unchanged
    """
    name = operation or getattr(func, "__name__", "operation")

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await func()
        except Exception as e:
            if not policy.should_retry(e):
                logger.error(f"{name} failed with non-retryable error on attempt {attempt}: {e}")
                raise

            if attempt >= policy.max_attempts:
                logger.error(f"{name} failed after {policy.max_attempts} attempts: {e}")
                raise RetryError(e, attempt) from e

            delay = policy.delay_for(attempt)
            logger.warning(
                f"{name} failed (attempt {attempt}/{policy.max_attempts}), "
                f"retrying in {delay:.2f}s: {e}"
            )
            await sleep(delay)
            continue

        if attempt > 1:
            logger.info(f"{name} succeeded on attempt {attempt}")
        return result
