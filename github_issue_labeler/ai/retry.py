"""Exponential backoff around transient provider failures."""

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from ..errors import ErrorClass, ProviderError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Backoff schedule for transient provider errors.

    max_attempts=None retries until the caller's deadline or cancellation
    stops it.
    """

    max_attempts: int | None = Field(6, ge=1)
    initial_delay: float = Field(1.0, gt=0)
    max_delay: float = Field(10.0, gt=0)
    multiplier: float = Field(2.0, ge=1)

    def delay(self, attempt: int) -> float:
        """Sleep before the attempt following the given one (1-based)."""
        return min(self.initial_delay * self.multiplier ** (attempt - 1), self.max_delay)


async def retry_transient(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str = "provider call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run call, retrying only errors classified as transient.

    Cancellation interrupts the backoff sleep immediately.

    Raises:
        ProviderError: Non-transient provider failure, unretried
        TransientProviderError: Retry ceiling reached
    """
    for attempt in itertools.count(1):
        try:
            return await call()
        except ProviderError as e:
            if e.classify() is not ErrorClass.TRANSIENT:
                raise
            if policy.max_attempts is not None and attempt >= policy.max_attempts:
                raise TransientProviderError(
                    f"{description}: giving up after {attempt} attempts: {e}",
                    attempts=attempt,
                ) from e
            delay = policy.delay(attempt)
            logger.warning(
                "Retrying %s in %.1fs (attempt %d): %s", description, delay, attempt, e
            )
            await sleep(delay)
    raise AssertionError("unreachable")
