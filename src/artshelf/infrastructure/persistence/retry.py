# Hey future me - SQLite allows ONE writer at a time. When the scan worker holds a batch
# transaction and something else (settings save, meta-source refill) writes, the loser gets
# "database is locked". Those locks are temporary, so waiting and retrying almost always
# works. Batch ingestion itself is NOT wrapped: a failed batch is reported in
# ScanResult.errors and the run moves on.
#
# USAGE:
#   @with_db_retry(max_attempts=3)
#   async def _apply(self, found: dict[int, str]) -> None:
#       async with self.db.session_scope() as session:  # own transaction per attempt
"""Database retry utilities for handling SQLite lock errors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def is_lock_error(exception: BaseException) -> bool:
    """Check if an exception is a retryable database lock error.

    Args:
        exception: The exception to check

    Returns:
        True for SQLite "database is locked"/"busy" operational errors
    """
    if not isinstance(exception, OperationalError):
        return False

    error_msg = str(exception).lower()
    return "locked" in error_msg or "busy" in error_msg


def with_db_retry(
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for retrying async database operations on lock errors.

    The backoff is exponential: 0.5s → 1s → 2s → 4s (capped at max_delay).

    Args:
        max_attempts: Maximum attempts including the first (default: 3)
        initial_delay: Initial delay in seconds (default: 0.5)
        max_delay: Maximum delay cap in seconds (default: 5.0)
        backoff_factor: Multiply delay by this each retry (default: 2.0)

    Returns:
        Decorated coroutine function with automatic retry logic.

    Notes:
        - Only retries on lock errors, other OperationalErrors are raised immediately
        - The wrapped function must open its own transaction, a rolled-back
          session cannot be reused for the next attempt
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            delay = initial_delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except OperationalError as e:
                    if not is_lock_error(e) or attempt == max_attempts:
                        if is_lock_error(e):
                            logger.error(
                                "Database locked after %d attempts, giving up: %s.%s",
                                max_attempts,
                                func.__module__,
                                func.__qualname__,
                            )
                        raise

                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.1fs: %s.%s",
                        attempt,
                        max_attempts,
                        delay,
                        func.__module__,
                        func.__qualname__,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)

            raise RuntimeError("Unexpected state in retry decorator")

        return wrapper

    return decorator
