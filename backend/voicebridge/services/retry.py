"""
Bounded exponential back-off for upstream AI calls.

Only cheap, idempotent calls go through here (translation of one text or
one vocabulary item). Attempts are capped: this sits on the user-facing
path, so total attempts = retries + 1 and delays never exceed MAX_DELAY.
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..core.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES: int = 2      # total attempts = DEFAULT_RETRIES + 1
BASE_DELAY: float = 0.5       # seconds, first back-off delay
BACKOFF_FACTOR: float = 2.0   # exponential multiplier
MAX_DELAY: float = 8.0

# Indirection so tests can skip real waiting
_sleep = asyncio.sleep


def is_retryable(exc: Exception) -> bool:
    """Transient provider failures only: timeouts, network errors, 429 and 5xx."""
    return isinstance(exc, ProviderError) and exc.retryable


def backoff_delay(attempt: int, base_delay: float = BASE_DELAY) -> float:
    """Delay before retry number ``attempt + 1`` (attempt counts from 0)."""
    return min(base_delay * (BACKOFF_FACTOR ** attempt), MAX_DELAY)


async def call_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int = DEFAULT_RETRIES,
    base_delay: float = BASE_DELAY,
    should_retry: Callable[[Exception], bool] = is_retryable,
    label: str = "call",
) -> T:
    """
    Await ``fn()`` and retry on errors accepted by ``should_retry``.

    Non-retryable errors are re-raised immediately; after the last attempt
    the final error is re-raised unchanged.
    """
    for attempt in range(retries + 1):
        try:
            return await fn()
        except Exception as exc:
            if not should_retry(exc) or attempt >= retries:
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "[Retry] %s failed (attempt %d/%d): %s; retrying in %.1fs",
                label, attempt + 1, retries + 1, exc, delay,
            )
            await _sleep(delay)
    raise AssertionError("unreachable")
