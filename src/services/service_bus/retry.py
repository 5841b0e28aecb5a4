"""
Bounded exponential-backoff retry for paginated administrative listings.

The SDK's listings are lazy, paged async iterables that cannot be resumed
after a failure, so every attempt re-creates the iterable through a
zero-argument producer and drains it from the start. A partially drained
listing is discarded: callers only ever see a complete listing or the
final error.
"""

import asyncio
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import TypeVar

from common.broker_errors import is_retryable
from common.config import config
from common.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def calculate_backoff_delay_ms(attempt: int, initial_delay_ms: int) -> int:
    """Delay after failed attempt `attempt` (counted from 1): 1000, 2000, 4000, ..."""
    return initial_delay_ms * (2 ** (attempt - 1))


async def list_with_retry(
    producer: Callable[[], AsyncIterable[T]],
    max_retries: int | None = None,
    initial_delay_ms: int | None = None,
    operation_name: str = "Listing",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[T]:
    """
    Drain a listing into a list, restarting it from scratch on failure.

    Args:
        producer: Returns a fresh async iterable on every call.
        max_retries: Total attempts before giving up (default from config).
        initial_delay_ms: Wait after the first failure; doubles per attempt.
        operation_name: Used in log messages.
        sleep: Awaitable sleep taking seconds (swappable in tests).

    Raises:
        The last error once attempts are exhausted, or the first error that
        retrying cannot fix (validation, not found, authentication).
    """
    max_retries = max_retries if max_retries is not None else config.listing_max_retries
    initial_delay_ms = initial_delay_ms if initial_delay_ms is not None else config.listing_initial_delay_ms

    attempt = 0
    while True:
        attempt += 1
        items: list[T] = []
        try:
            async for item in producer():
                items.append(item)
            if attempt > 1:
                logger.info(f"[{operation_name}] Succeeded on attempt {attempt}/{max_retries}")
            return items

        except Exception as e:
            if attempt >= max_retries or not is_retryable(e):
                raise

            delay_ms = calculate_backoff_delay_ms(attempt, initial_delay_ms)
            logger.warning(
                f"[{operation_name}] {type(e).__name__}: {e} (discarding {len(items)} partial items). "
                f"Retry {attempt}/{max_retries} after {delay_ms}ms..."
            )
            await sleep(delay_ms / 1000)
