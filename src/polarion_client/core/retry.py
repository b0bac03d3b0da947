"""
Bounded exponential-backoff retry for one async operation.

    Attempting --ok--> Done
    Attempting --retryable, retries left--> Waiting --> Attempting
    Attempting --not retryable--> raise the error unchanged
    Attempting --retryable, no retries left--> raise RetryExhaustedError

Cancellation is plain asyncio task cancellation: CancelledError raised in an
attempt or in the backoff sleep propagates at once and is never retried.
The executor does not log; pass on_retry to observe retries.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import RetryExhaustedError, is_retryable as default_is_retryable

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 1  # extra attempts after the first
    min_wait: float = 5.0  # seconds
    max_wait: float = 15.0
    is_retryable: Callable[[BaseException], bool] = default_is_retryable
    jitter: float = 0.25  # +/- fraction of the computed wait

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.min_wait < 0:
            raise ValueError("min_wait must be >= 0")
        if self.max_wait < self.min_wait:
            raise ValueError("max_wait must be >= min_wait")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")

    def backoff(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """
        Wait before retry number ``attempt + 1`` (attempt counts from 0).

        min_wait * 2**attempt capped at max_wait, then +/- jitter, then
        clamped back into [min_wait, max_wait].
        """
        # min_wait * 2**1024 would overflow a float
        base = min(self.min_wait * (2 ** min(attempt, 62)), self.max_wait)
        spread = base * self.jitter
        wait = base - spread + 2 * spread * rand()
        return max(self.min_wait, min(wait, self.max_wait))


NO_RETRY = RetryPolicy(max_retries=0, min_wait=0.0, max_wait=0.0)


@dataclass
class RetryState:
    attempt: int = 0
    last_error: Optional[BaseException] = None
    next_wait: float = 0.0


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_retry: Optional[Callable[[RetryState], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Run ``operation`` at most ``policy.max_retries + 1`` times."""
    state = RetryState()
    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            state.last_error = exc
            if not policy.is_retryable(exc):
                raise
            if state.attempt >= policy.max_retries:
                raise RetryExhaustedError(state.attempt + 1, exc) from exc

            state.next_wait = policy.backoff(state.attempt, rand)
            if on_retry is not None:
                on_retry(state)
            await sleep(state.next_wait)
            state.attempt += 1


__all__ = ["NO_RETRY", "RetryPolicy", "RetryState", "execute"]
