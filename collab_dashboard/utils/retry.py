"""Retry utilities with exponential backoff for GitHub API calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    base_delay: float = 0.5  # seconds
    max_delay: float = 8.0  # seconds
    exponential_base: float = 2.0
    retryable_exceptions: tuple = (
        httpx.TimeoutException,
        httpx.ConnectError,
        httpx.ReadError,
        ConnectionError,
        TimeoutError,
    )
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.exponential_base**attempt), self.max_delay)


DEFAULT_RETRY_CONFIG = RetryConfig()
NO_RETRY = RetryConfig(max_retries=0)


async def retry_async(
    func: Callable[..., Awaitable[httpx.Response]],
    *args: Any,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    operation_name: str = "operation",
    **kwargs: Any,
) -> httpx.Response:
    """Execute an async HTTP call with retry logic and exponential backoff.

    Retryable status codes are retried while attempts remain; the last
    response is returned as-is so the caller can map it to an error.
    Retryable transport errors are re-raised once attempts are exhausted.

    Args:
        func: Async function returning an httpx.Response
        *args: Positional arguments for the function
        config: Retry configuration
        operation_name: Name of the operation for logging
        **kwargs: Keyword arguments for the function

    Returns:
        The final response
    """
    for attempt in range(config.max_retries + 1):
        try:
            response = await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt >= config.max_retries:
                logger.error(
                    f"{operation_name}: Failed after {config.max_retries + 1} attempts: {e}"
                )
                raise
            delay = config.delay_for(attempt)
            logger.warning(
                f"{operation_name}: {type(e).__name__}, "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{config.max_retries + 1})"
            )
            await asyncio.sleep(delay)
            continue

        if response.status_code in config.retryable_status_codes and attempt < config.max_retries:
            delay = config.delay_for(attempt)
            logger.warning(
                f"{operation_name}: Got status {response.status_code}, "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{config.max_retries + 1})"
            )
            await asyncio.sleep(delay)
            continue

        return response

    # Unreachable: the loop either returns or raises on the final attempt
    raise RuntimeError(f"{operation_name}: retry loop exited without a result")
