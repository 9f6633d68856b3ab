"""
Retry utilities for outbound calls.

Each attempt is bounded by a timeout so a hung provider cannot stall the
caller; failed attempts back off exponentially.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def retry_with_timeout(
    func: Callable[[], Awaitable[T]],
    *,
    timeout: float,
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: bool = True,
    label: str = "call",
) -> T:
    """
    Run `func` with a per-attempt timeout, retrying on any exception.

    Args:
        func: Zero-argument coroutine factory (called once per attempt)
        timeout: Seconds allowed per attempt
        max_retries: Retries after the first attempt
        base_delay: First backoff delay in seconds
        max_delay: Upper bound for a single backoff delay
        jitter: Randomize delays to avoid synchronized retries
        label: Name used in log lines

    Returns:
        Result of the first successful attempt

    Raises:
        The exception of the last attempt (asyncio.TimeoutError on timeout)
    """
    last_exception: BaseException = RuntimeError(f"{label}: no attempt made")

    for attempt in range(1, max_retries + 2):
        try:
            return await asyncio.wait_for(func(), timeout=timeout)
        except Exception as e:
            last_exception = e
            if attempt > max_retries:
                break

            delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
            if jitter:
                delay = delay * (0.5 + random.random() * 0.5)
            logger.warning(
                "%s failed (attempt %d/%d): %r. Retrying in %.2fs",
                label,
                attempt,
                max_retries + 1,
                e,
                delay,
            )
            await asyncio.sleep(delay)

    raise last_exception
