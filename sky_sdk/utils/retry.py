"""
Async retry with capped exponential backoff and full jitter.

Used by the portal transport only. Registry and SkyDB operations do not retry
on their own: a registry write that may have landed cannot be replayed safely.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

__all__ = ["RetryError", "backoff_delay", "aretry_call"]

log = logging.getLogger(__name__)

T = TypeVar("T")


class RetryError(RuntimeError):
    """All attempts failed; `last_exception` is the final failure."""

    def __init__(self, last_exception: BaseException, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {last_exception!r}")
        self.last_exception = last_exception
        self.attempts = attempts


def backoff_delay(attempt: int, *, base: float, max_delay: float) -> float:
    """Sleep before retry number `attempt` (1-based): U(0, min(base * 2**(attempt-1), max_delay))."""
    cap = min(base * (2 ** (max(attempt, 1) - 1)), max_delay)
    return random.uniform(0.0, max(cap, 0.0))


async def aretry_call(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    retries: int,
    base: float,
    max_delay: float,
    exceptions: Tuple[Type[BaseException], ...],
    **kwargs: Any,
) -> T:
    """
    Await `fn(*args, **kwargs)`; on one of `exceptions` retry up to `retries`
    more times. Other errors propagate at once.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn(*args, **kwargs)
        except exceptions as exc:
            if attempt > retries:
                raise RetryError(exc, attempt) from exc
            delay = backoff_delay(attempt, base=base, max_delay=max_delay)
            log.warning("retrying after %r (attempt %d/%d, sleeping %.2fs)", exc, attempt, retries, delay)
            await asyncio.sleep(delay)
