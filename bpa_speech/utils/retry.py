"""Retry utility with bounded backoff.

RetryPolicy describes how long a caller is willing to keep retrying;
retry_with_backoff applies it to an async callable. Only exceptions listed
in retryable_exceptions are retried, everything else propagates at once.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from bpa_speech.utils.errors import RetriesExhaustedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded backoff settings.

    Delay before retry n (0-based) is base_delay * multiplier**n, capped at
    max_delay. max_attempts counts every call including the first; None
    means no attempt cap. max_elapsed bounds the total wall time in seconds.
    """

    max_attempts: int | None = 120
    base_delay: float = 5.0
    multiplier: float = 1.0
    max_delay: float | None = None
    max_elapsed: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_for(self, retry_number: int) -> float:
        delay = self.base_delay * (self.multiplier**retry_number)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def allows(self, attempts: int, elapsed: float, next_delay: float) -> bool:
        """Whether another attempt fits the budget after `attempts` calls."""
        if self.max_attempts is not None and attempts >= self.max_attempts:
            return False
        if self.max_elapsed is not None and elapsed + next_delay > self.max_elapsed:
            return False
        return True


def retry_with_backoff(
    policy: RetryPolicy,
    retryable_exceptions: tuple[type[Exception], ...],
) -> Callable:
    """Decorator for retrying async functions under a RetryPolicy.

    Args:
        policy: Attempt and time budget plus delay schedule.
        retryable_exceptions: Exception types eligible for retry. Anything
            else propagates unchanged on the first failure.

    Returns:
        Decorator that wraps an async function with retry logic. When the
        budget runs out a RetriesExhaustedError chained to the last error
        is raised.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            attempts = 0
            while True:
                attempts += 1
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    delay = policy.delay_for(attempts - 1)
                    elapsed = time.monotonic() - started
                    if not policy.allows(attempts, elapsed, delay):
                        raise RetriesExhaustedError(
                            f"Gave up after {attempts} attempts: {exc}",
                            filename=getattr(exc, "filename", None),
                            status_code=getattr(exc, "status_code", None),
                            attempts=attempts,
                        ) from exc
                    logger.warning(
                        "Retry %d for %s after %.1fs: %s",
                        attempts,
                        func.__name__,
                        delay,
                        exc,
                        extra={"attempt": attempts},
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
