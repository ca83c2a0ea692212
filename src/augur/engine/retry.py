"""Bounded exponential backoff around one logical unit of work.

Delay before the retry that follows attempt ``n`` (0-based) is::

    base_delay_ms * 2**n * (0.8 + 0.4 * random())

Errors classified as quota, rate-limit or capacity exhaustion are raised
immediately without retrying, whatever max_attempts says.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from augur.core.constants import (
    RETRY_BASE_DELAY_MS,
    RETRY_JITTER_LOW,
    RETRY_JITTER_SPAN,
    RETRY_MAX_ATTEMPTS,
)
from augur.core.errors import is_retryable
from augur.core.logging import get_logger

_logger = get_logger("retry")

T = TypeVar("T")


class RetryController:
    """Runs an async operation with retries.

    Args:
        sleep: Awaitable sleep taking seconds. Defaults to asyncio.sleep.
        random_source: Returns a float in [0, 1). Defaults to random.random.
    """

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        random_source: Callable[[], float] | None = None,
    ) -> None:
        self._sleep = sleep or asyncio.sleep
        self._random = random_source or random.random

    def backoff_delay_ms(self, attempt: int, base_delay_ms: float) -> float:
        jitter = RETRY_JITTER_LOW + RETRY_JITTER_SPAN * self._random()
        return base_delay_ms * (2**attempt) * jitter

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int = RETRY_MAX_ATTEMPTS,
        base_delay_ms: float = RETRY_BASE_DELAY_MS,
    ) -> T:
        """Await operation() until it succeeds or attempts run out.

        Raises:
            The first non-retryable error, or the last error once
            max_attempts have been made.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(max_attempts):
            try:
                return await operation()
            except Exception as e:
                if not is_retryable(e):
                    _logger.info(
                        "retry_aborted",
                        attempt=attempt + 1,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise
                if attempt + 1 >= max_attempts:
                    _logger.warning(
                        "retry_exhausted",
                        attempts=max_attempts,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise
                delay_ms = self.backoff_delay_ms(attempt, base_delay_ms)
                _logger.warning(
                    "retry_scheduled",
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    delay_ms=round(delay_ms, 1),
                    error=str(e),
                )
                await self._sleep(delay_ms / 1000)

        raise AssertionError("unreachable")
