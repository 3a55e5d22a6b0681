# src/rag/embeddings/retry.py — v2
"""Per-item retry policy with exponential backoff for batch embedding.

Only transient provider failures are retried; malformed responses fail the
item immediately.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from learnhub.core.errors import ProviderUnavailable

logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """All attempts failed for one batch item."""

    def __init__(self, label: str, attempts: int, last_error: Exception):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{label} failed after {attempts} attempt(s): {last_error}")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for transient provider failures."""

    max_retries: int = 2
    base_delay_s: float = 0.5
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        delay = self.base_delay_s * (self.backoff_factor ** attempt)
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return delay


NO_RETRY = RetryPolicy(max_retries=0, base_delay_s=0.0, jitter=False)


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    policy: RetryPolicy = NO_RETRY,
    retry_on: tuple[type[Exception], ...] = (ProviderUnavailable,),
    label: str = "call",
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying on ``retry_on`` errors.

    Raises:
        RetryExhausted: When a retryable error persists past ``max_retries``.
        Exception: Any non-retryable error, unchanged.
    """
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except retry_on as e:
            attempts += 1
            if attempts > policy.max_retries:
                raise RetryExhausted(label, attempts, e) from e

            delay = policy.delay_for(attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.2fs",
                label, e, attempts, policy.max_retries + 1, delay,
            )
            await asyncio.sleep(delay)
