"""Retry with exponential backoff and timeout bounding for external calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from notebot.errors import ProviderTimeoutError, StorageTimeoutError

T = TypeVar("T")

# HTTP status codes and error patterns that are safe to retry
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_RETRYABLE_PATTERNS = (
    "rate limit",
    "timeout",
    "timed out",
    "connection",
    "server error",
    "overloaded",
    "too many requests",
    "temporarily unavailable",
)


def _is_retryable(error: Exception) -> bool:
    """Check if an error is transient and safe to retry."""
    if isinstance(error, (ProviderTimeoutError, StorageTimeoutError, asyncio.TimeoutError)):
        return True

    # litellm exceptions carry the HTTP status; trust it over the message text
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status in _RETRYABLE_STATUS_CODES

    error_str = str(error).lower()
    if any(pattern in error_str for pattern in _RETRYABLE_PATTERNS):
        return True
    return any(str(code) in error_str for code in _RETRYABLE_STATUS_CODES)


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: float | None,
    error_cls: type[Exception],
    what: str,
) -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    A stall is raised as ``error_cls`` (e.g. ``StorageTimeoutError``) so callers
    can tell it apart from a hard failure. ``timeout=None`` waits forever.
    """
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise error_cls(f"{what} timed out after {timeout}s") from e


async def with_retry(
    fn: Callable[..., Awaitable[T]],
    *args: object,
    max_retries: int = 3,
    base_delay: float = 1.0,
    **kwargs: object,
) -> T:
    """Call an async function with exponential backoff retry on transient errors.

    Args:
        fn: Async function to call.
        *args: Positional arguments for fn.
        max_retries: Maximum number of retry attempts.
        base_delay: Base delay in seconds (doubles each retry).
        **kwargs: Keyword arguments for fn.

    Returns:
        The return value of fn.

    Raises:
        The last exception if all retries are exhausted or error is non-retryable.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            last_error = e

            if attempt >= max_retries or not _is_retryable(e):
                raise

            delay = base_delay * (2**attempt)
            logger.info(
                f"Retryable error (attempt {attempt + 1}/{max_retries}), retrying in {delay}s: {e}"
            )
            await asyncio.sleep(delay)

    raise last_error  # type: ignore[misc]
