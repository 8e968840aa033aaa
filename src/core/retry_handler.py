"""
Bounded Retries for Storage Mutations.

Repair writes (orphan deletes, duplicate removals, field normalization)
occasionally hit lock conflicts or a briefly unavailable database. Those
calls are retried with capped exponential backoff; everything else fails on
the first attempt so the caller can report it.
"""

import asyncio
import inspect
import random
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Driver messages that signal a conflict rather than a bad statement
TRANSIENT_MESSAGE_HINTS = (
    "deadlock",
    "lock acquisition",
    "serialization",
    "conflict",
    "temporar",
    "unavailable",
    "timed out",
    "timeout",
)


class RetryableError(Exception):
    """Base for failures that may succeed when the call is repeated."""


class NonRetryableError(Exception):
    """Base for failures that repeating the call cannot fix."""


@dataclass
class RetryConfig:
    """Retry budget and backoff curve for one mutation."""

    max_retries: int = 3
    initial_delay: float = 0.2
    max_delay: float = 5.0
    exponential_base: float = 2.0
    jitter: float = 0.1

    retryable_exceptions: tuple[type[Exception], ...] = (
        RetryableError,
        TimeoutError,
        ConnectionError,
    )
    non_retryable_exceptions: tuple[type[Exception], ...] = (
        NonRetryableError,
        ValueError,
        TypeError,
        KeyError,
    )

    def get_delay(self, retry_index: int) -> float:
        """Backoff before retry number ``retry_index + 1``, capped and jittered."""
        base = min(self.initial_delay * self.exponential_base**retry_index, self.max_delay)
        spread = base * self.jitter
        return max(0.0, base + random.uniform(-spread, spread))

    def is_retryable(self, error: Exception) -> bool:
        # TransientRepositoryError is both a RepositoryError and a RetryableError
        if isinstance(error, self.retryable_exceptions):
            return True
        if isinstance(error, self.non_retryable_exceptions):
            return False
        message = str(error).lower()
        return any(hint in message for hint in TRANSIENT_MESSAGE_HINTS)


class RetryHandler:
    """
    Runs a callable under a RetryConfig.

    Usage:
        handler = RetryHandler(RetryConfig(max_retries=2))
        await handler.execute(ratings.delete, rating_id, on_retry=count)
    """

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()
        self._total_retries = 0
        self._total_failures = 0

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "total_retries": self._total_retries,
            "total_failures": self._total_failures,
        }

    async def _call(self, func: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def execute(
        self,
        func: Callable[..., T],
        *args,
        on_retry: Callable[[int, Exception], None] | None = None,
        **kwargs,
    ) -> T:
        """
        Call ``func(*args, **kwargs)``, awaiting it when it returns an awaitable.

        ``on_retry(retry_number, error)`` runs before each retry, starting at 1.

        Raises:
            The last error, once it is non-retryable or the budget is spent
        """
        retry_index = 0
        while True:
            try:
                return await self._call(func, args, kwargs)
            except Exception as e:
                retryable = self.config.is_retryable(e)
                if not retryable or retry_index >= self.config.max_retries:
                    self._total_failures += 1
                    logger.warning(
                        "Mutation failed",
                        retryable=retryable,
                        attempts=retry_index + 1,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise

                delay = self.config.get_delay(retry_index)
                retry_index += 1
                self._total_retries += 1
                logger.info(
                    "Retrying mutation",
                    retry=retry_index,
                    max_retries=self.config.max_retries,
                    delay_seconds=round(delay, 3),
                    error_type=type(e).__name__,
                )
                if on_retry:
                    on_retry(retry_index, e)
                await asyncio.sleep(delay)
