"""Retry decorator with exponential backoff for transient failures."""

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from aniranker.common.logging import get_logger

logger = get_logger("common.retry")

# Accepts any callable that takes a delay and returns None or an awaitable
SleepFunc = Callable[[float], None | Awaitable[None]]


class MaxRetriesError(Exception):
    """Raised by ``call_with_retry`` when every attempt failed.

    Attributes:
        max_attempts: Number of attempts made
        last_exception: The exception raised by the final attempt
    """

    def __init__(self, max_attempts: int, last_exception: Exception) -> None:
        self.max_attempts = max_attempts
        self.last_exception = last_exception
        super().__init__(
            f"Max retries ({max_attempts}) exceeded. "
            f"Last error: {type(last_exception).__name__}: {last_exception}"
        )


def _validate_retry_config(
    max_retries: int,
    base_delay_seconds: float,
    retryable_exceptions: tuple[type[Exception], ...],
) -> None:
    """Validate retry configuration parameters.

    Raises:
        ValueError: If max_retries or base_delay_seconds are invalid
        TypeError: If retryable_exceptions is not a non-empty tuple of Exception types
    """
    if not isinstance(max_retries, int) or max_retries < 0:
        raise ValueError(f"max_retries must be a non-negative integer, got {max_retries!r}")
    if not isinstance(base_delay_seconds, (int, float)) or base_delay_seconds < 0:
        raise ValueError(f"base_delay_seconds must be >= 0, got {base_delay_seconds!r}")
    if not isinstance(retryable_exceptions, tuple) or not retryable_exceptions:
        raise TypeError("retryable_exceptions must be a non-empty tuple")
    for exc_type in retryable_exceptions:
        if not (isinstance(exc_type, type) and issubclass(exc_type, Exception)):
            raise TypeError(f"retryable_exceptions must contain Exception types, got {exc_type}")


def _calculate_delay(attempt: int, base_delay_seconds: float) -> float:
    """Exponential backoff: base, 2*base, 4*base, ... (attempt is 0-indexed)."""
    return base_delay_seconds * (2**attempt)


def _log_retry(func_name: str, attempt: int, max_retries: int, delay: float, error: Exception):
    logger.warning(
        f"Retry attempt {attempt + 1}/{max_retries} for {func_name}",
        metadata={"attempt": attempt + 1, "delay": delay, "error": str(error)},
    )


def _log_exhausted(func_name: str, max_retries: int) -> None:
    logger.error(
        f"Max retries ({max_retries}) exceeded for {func_name}",
        metadata={"function": func_name, "max_retries": max_retries},
    )


def retry(
    max_retries: int = 3,
    base_delay_seconds: float = 1,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep_func: SleepFunc | None = None,
):
    """Decorator to retry coroutine functions on specified exceptions.

    Args:
        max_retries: Maximum number of retry attempts after the first call
        base_delay_seconds: Delay before the first retry, doubled each time
        retryable_exceptions: Exception types that trigger a retry
        sleep_func: Optional sleep function for testability (sync or async).
            Defaults to asyncio.sleep.

    Raises:
        TypeError: If the decorated function is not a coroutine function

    Example:
        @retry(max_retries=2, base_delay_seconds=0.5, retryable_exceptions=(RateLimitError,))
        async def fetch():
            ...

        On first failure: retry after 0.5s
        On second failure: retry after 1s
        After max retries: re-raise the last exception
    """
    _validate_retry_config(max_retries, base_delay_seconds, retryable_exceptions)

    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"retry expects a coroutine function, got {func!r}")
        func_name = func.__name__

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt == max_retries:
                        _log_exhausted(func_name, max_retries)
                        raise
                    delay = _calculate_delay(attempt, base_delay_seconds)
                    _log_retry(func_name, attempt, max_retries, delay, e)
                    if sleep_func is None:
                        await asyncio.sleep(delay)
                    else:
                        result = sleep_func(delay)
                        if inspect.isawaitable(result):
                            await result
            raise RuntimeError("Unexpected retry loop exit without exception")

        return async_wrapper

    return decorator


async def call_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    max_retries: int = 3,
    base_delay_seconds: float = 1,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep_func: SleepFunc | None = None,
    **kwargs: Any,
) -> Any:
    """Await ``func(*args, **kwargs)`` with retries configured at call time.

    Unlike the decorator, exhaustion is reported as ``MaxRetriesError`` so
    callers can tell "gave up" apart from a non-retryable failure.

    Raises:
        MaxRetriesError: If all attempts raised a retryable exception
    """
    wrapped = retry(
        max_retries=max_retries,
        base_delay_seconds=base_delay_seconds,
        retryable_exceptions=retryable_exceptions,
        sleep_func=sleep_func,
    )(func)
    try:
        return await wrapped(*args, **kwargs)
    except retryable_exceptions as e:
        raise MaxRetriesError(max_retries + 1, e) from e
