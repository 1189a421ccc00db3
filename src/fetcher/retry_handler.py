"""Retry handler with exponential backoff and jitter."""

import asyncio
import random
from typing import Any, Awaitable, Callable, Iterable, Optional, Set

import httpx


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = 0.2,
    max_delay: float = 2.0,
    jitter_max: float = 0.1
) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: min(max_delay, (base_delay * (2 ** attempt)) + random_jitter)

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds
        jitter_max: Maximum jitter to add in seconds

    Returns:
        Delay in seconds
    """
    exponential_delay = base_delay * (2 ** attempt)
    jitter = random.uniform(0, jitter_max)
    return min(max_delay, exponential_delay + jitter)


class RetryHandler:
    """
    Retries backend calls that failed transiently.

    Retries on: 429, 502, 503, 504 status codes, timeouts and connection errors
    Everything else (4xx, malformed bodies) fails immediately.
    """

    RETRYABLE_STATUS_CODES: Set[int] = {429, 502, 503, 504}

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.2,
        max_delay: float = 2.0,
        jitter_max: float = 0.1,
        retryable_status_codes: Optional[Iterable[int]] = None,
        on_retry: Optional[Callable[[int, float, Exception], None]] = None
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay cap
            jitter_max: Maximum jitter to add
            retryable_status_codes: Overrides RETRYABLE_STATUS_CODES
            on_retry: Called with (attempt, delay, error) before each retry
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_max = jitter_max
        self.retryable_status_codes = frozenset(
            retryable_status_codes or self.RETRYABLE_STATUS_CODES
        )
        self.on_retry = on_retry

    def is_retryable(self, error: Exception) -> bool:
        """
        Check if error is retryable.

        Args:
            error: Exception raised by the attempted call

        Returns:
            True if error should be retried
        """
        if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in self.retryable_status_codes
        return False

    async def execute(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> Any:
        """
        Execute coroutine function with retry logic.

        Args:
            func: Coroutine function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result from successful function execution

        Raises:
            Exception: The last error once retries are exhausted, or the first
                non-retryable error
        """
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if attempt >= self.max_retries or not self.is_retryable(e):
                    raise

                delay = calculate_backoff_delay(
                    attempt,
                    self.base_delay,
                    self.max_delay,
                    self.jitter_max
                )
                if self.on_retry:
                    self.on_retry(attempt, delay, e)

                await asyncio.sleep(delay)
                attempt += 1
