"""
Retry with jittered exponential backoff.

Used by the locking allocator around its write transaction. Only transient
storage errors (SQLite busy/locked, serialization failures) are retried;
anything else propagates immediately.
"""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a retryable error."""
    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")


def backoff_delay(attempt: int, base_delay: float, rng: Optional[random.Random] = None) -> float:
    """
    Delay before the next attempt: base_delay * 2^(attempt-1) scaled by a
    random factor in [0.5, 1.5).
    """
    rng = rng or random
    factor = 0.5 + rng.random()
    return base_delay * (2 ** (attempt - 1)) * factor


async def with_retry(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int = 10,
    base_delay: float = 0.025,
    retry_on: Tuple[Type[BaseException], ...] = (OperationalError,),
    label: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> Any:
    """
    Run `operation` until it succeeds or `max_attempts` is reached.

    Raises RetryExhaustedError wrapping the last retryable error once the
    ceiling is hit.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            last_error = e
            if attempt == max_attempts:
                break
            delay = backoff_delay(attempt, base_delay, rng)
            logger.warning(
                f"[RETRY] {label} attempt {attempt}/{max_attempts} failed: "
                f"{type(e).__name__}. Waiting {delay:.3f}s"
            )
            await sleep(delay)

    logger.error(f"[RETRY] {label} gave up after {max_attempts} attempts")
    raise RetryExhaustedError(max_attempts, last_error)
