"""Retry utilities with exponential backoff."""
import asyncio
from collections.abc import Awaitable, Callable
from logging import Logger


def backoff_delay(
    attempt: int,
    *,
    initial_sec: float,
    max_sec: float,
) -> float:
    """Return the delay before retry number ``attempt`` (0-based), capped."""
    return min(max_sec, initial_sec * (2**attempt))


async def with_retry(
    fn: Callable[[], Awaitable[None]],
    *,
    name: str,
    logger: Logger,
    max_retries: int = 3,
    initial_backoff_sec: float = 2.0,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
) -> bool:
    """Execute an async function with retry logic and exponential backoff.

    Args:
        fn: The coroutine function to execute.
        name: Name for logging purposes.
        logger: Logger instance to use.
        max_retries: Maximum number of attempts.
        initial_backoff_sec: Initial backoff delay in seconds (doubles each retry).
        retryable_exceptions: Exception types that trigger a retry.

    Returns:
        True if the function succeeded, False otherwise.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            await fn()
            return True
        except retryable_exceptions as e:
            last_error = e
            if attempt + 1 == max_retries:
                break
            backoff = initial_backoff_sec * (2**attempt)
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %ds...",
                name,
                attempt + 1,
                max_retries,
                e,
                backoff,
            )
            await asyncio.sleep(backoff)
        except Exception as e:
            logger.error("%s failed (non-retryable): %s", name, e)
            return False

    logger.error(
        "%s failed after %d attempts. Last error: %s",
        name,
        max_retries,
        last_error,
    )
    return False
