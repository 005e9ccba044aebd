"""Retry helper with exponential backoff for async callables."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .logger import get_logger

logger = get_logger(__name__).bind(component="common", layer="retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay_seconds: float = 1.0
    exponential_backoff: bool = True
    backoff_multiplier: float = 2.0
    max_delay_seconds: float = 10.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def delay_for(self, attempt: int) -> float:
        if not self.exponential_backoff:
            return self.delay_seconds
        delay = self.delay_seconds * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay_seconds)


RETRY_PRESETS = {
    "quick": RetryPolicy(max_attempts=2, delay_seconds=0.5, exponential_backoff=False),
    "standard": RetryPolicy(max_attempts=3, delay_seconds=1.0),
    "aggressive": RetryPolicy(max_attempts=5, delay_seconds=1.0, max_delay_seconds=30.0),
}


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **context,
) -> T:
    """Await ``fn`` until it succeeds or the policy gives up.

    Errors outside ``policy.retry_on`` propagate on the first attempt. The last
    error is re-raised once attempts are exhausted.
    """
    policy = policy or RETRY_PRESETS["standard"]
    log = logger.bind(**context) if context else logger
    attempt = 1
    while True:
        try:
            result = await fn()
        except policy.retry_on as exc:
            if attempt >= policy.max_attempts:
                log.failure(
                    "All retry attempts failed",
                    exc,
                    attempts=attempt,
                    max_attempts=policy.max_attempts,
                )
                raise
            delay = policy.delay_for(attempt)
            log.warning(
                "Retry attempt failed, retrying",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=delay,
                error=str(exc),
            )
            await sleep(delay)
            attempt += 1
            continue
        if attempt > 1:
            log.info("Retry succeeded", attempt=attempt, max_attempts=policy.max_attempts)
        return result
