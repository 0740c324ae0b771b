"""In-process retry helpers for single operations (e.g., one browser action).

This is separate from the scenario-level RetryOrchestrator: it wraps one
awaitable with exponential backoff and does not touch the registry.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERROR_KEYWORDS: tuple[str, ...] = (
    "timeout",
    "network",
    "connection",
    "element not found",
    "page crash",
    "browser disconnect",
)


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay after failed attempt ``attempt`` (1-based): base * 2**(attempt-1)."""
    return base_delay * (2 ** (attempt - 1))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Await ``operation`` until it succeeds or attempts run out.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        max_attempts: Total attempts, including the first.
        base_delay: Seconds to wait after the first failure; doubles each time.

    Returns:
        The first successful result.

    Raises:
        ValueError: If max_attempts < 1.
        Exception: The last error raised by ``operation``.

    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception:
            if attempt == max_attempts:
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.info("Retry attempt %d/%d in %.2fs...", attempt, max_attempts, delay)
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # loop always returns or raises


def should_retry_test(error: str) -> bool:
    """True if the error text looks transient (timeouts, network, crashes)."""
    lowered = error.lower()
    return any(keyword in lowered for keyword in RETRYABLE_ERROR_KEYWORDS)
