"""
Reliability Utilities.

Retry helper for idempotent follow-up steps that run after a primary write.
"""

import asyncio
import logging
from typing import Callable, Any

logger = logging.getLogger(__name__)


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried call failed."""

    def __init__(self, task_name: str, attempts: int, last_error: Exception):
        self.task_name = task_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{task_name} failed after {attempts} attempt(s): {last_error}")


async def retry_async(
    func: Callable,
    *args,
    attempts: int = 3,
    backoff_seconds: float = 0.05,
    task_name: str = None,
    **kwargs
) -> Any:
    """
    Call an async function until it succeeds or attempts run out.

    Only use this for idempotent work: the call may be repeated after a
    partial failure. Backoff is linear (attempt * backoff_seconds).

    Raises:
        RetryExhaustedError wrapping the last exception
    """
    name = task_name or getattr(func, "__name__", "task")
    attempts = max(attempts, 1)
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            last_error = e
            logger.warning(
                "Attempt failed",
                extra={"task": name, "attempt": attempt, "attempts": attempts, "error": str(e)}
            )
            if attempt < attempts and backoff_seconds > 0:
                await asyncio.sleep(backoff_seconds * attempt)

    raise RetryExhaustedError(name, attempts, last_error)
