"""Retries for the raw HTTP calls made with httpx.

GraphQL queries and wallet lookups go through ``async_retry``; PyGithub
handles its own retries. Only transport failures are retried by default:
an HTTP error response is an answer, not a transient failure.

Backoff Formula:
    delay = min(backoff_factor ** attempt_number, max_delay)
    For backoff_factor=2.0: 2s, 4s, 8s, ... capped at max_delay
"""

import asyncio
import functools
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)

RETRYABLE_HTTP_ERRORS: tuple[type[Exception], ...] = (httpx.TransportError,)
"""Errors raised by httpx before any response arrived."""

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF = 2.0
DEFAULT_MAX_DELAY = 10.0


def backoff_delays(max_attempts: int, backoff_factor: float, max_delay: float) -> Iterator[float]:
    """Yield the sleep before each retry; one fewer than ``max_attempts``."""
    for attempt in range(1, max_attempts):
        yield min(backoff_factor**attempt, max_delay)


def async_retry(
    max_attempts: int = DEFAULT_ATTEMPTS,
    backoff_factor: float = DEFAULT_BACKOFF,
    exceptions: tuple[type[Exception], ...] = RETRYABLE_HTTP_ERRORS,
    max_delay: float = DEFAULT_MAX_DELAY,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Retry an async HTTP call with exponential backoff.

    Args:
        max_attempts: Total attempts, the first one included
        backoff_factor: Base of the exponential delay
        exceptions: Errors that trigger a retry; anything else propagates
        max_delay: Upper bound of a single sleep, in seconds

    The last error is re-raised once the attempts are used up.

    Example:
        >>> @async_retry()
        ... async def fetch_user(user_id: int) -> httpx.Response:
        ...     return await client.get(f"/rest/v1/users?id=eq.{user_id}")
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(max_attempts, backoff_factor, max_delay)
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    delay = next(delays, None)
                    if delay is None:
                        log.error("http_retry_exhausted", function=func.__name__, attempts=attempt, error=str(e))
                        raise
                    log.warning(
                        "http_retry_scheduled",
                        function=func.__name__,
                        attempt=attempt,
                        delay=delay,
                        error=str(e),
                    )
                await asyncio.sleep(delay)
                attempt += 1

        return wrapper

    return decorator
