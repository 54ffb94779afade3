"""Bounded retry with linearly growing backoff for async operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .errors import ExhaustedRetries

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """Runs an async operation up to max_attempts times.

    Between attempt i and i+1 (1-based) it waits base_delay * i, so with the
    defaults a failing call is tried at t=0, t=1s and t=3s.

    Only exceptions listed in retry_on are retried; anything else propagates
    from the failing attempt unchanged. The operation must be safe to repeat.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._retry_on = retry_on
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> T:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        delay = self.base_delay if base_delay is None else base_delay
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        attempt = 1
        while True:
            try:
                return await operation()
            except self._retry_on as exc:
                if attempt >= attempts:
                    logger.warning("Giving up after %d attempt(s): %s", attempts, exc)
                    raise ExhaustedRetries(exc, attempts) from exc
                logger.warning(
                    "Attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt,
                    attempts,
                    exc,
                    delay * attempt,
                )
                await self.backoff(attempt, delay)
                attempt += 1

    async def backoff(self, attempt: int, base_delay: float | None = None) -> None:
        """Sleep for the delay that follows the given (1-based) attempt."""
        delay = self.base_delay if base_delay is None else base_delay
        await self._sleep(delay * attempt)
