"""
Retry Manager for DoH provider queries.

Provides the single, fixed-backoff retry applied to each provider query:
only timeouts and transient HTTP 500/502/503/504 failures are retried,
and every other failure is returned immediately as a classified error.
Configuration errors are never retried and propagate to the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import RetryConfig
from .enums import ErrorCategory
from .error_classifier import classify_error
from .exceptions import ConfigurationError
from .models import ClassifiedError

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retried operation."""

    success: bool
    result: Optional[T]
    attempts: int
    error: Optional[ClassifiedError]


class RetryManager:
    """
    Fixed-backoff retry for provider queries.

    Total attempts are ``1 + max_retries``; the same ``backoff_seconds``
    delay precedes every retry.
    """

    def __init__(
        self,
        config: RetryConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry configuration
            sleep: Awaitable delay function (replaceable in tests)
        """
        self._config = config
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def is_retryable(self, error: ClassifiedError) -> bool:
        """Timeouts and transient HTTP statuses are retryable; nothing else is."""
        if error.category == ErrorCategory.TIMEOUT:
            return True
        return (
            error.category == ErrorCategory.DNS_ERROR
            and error.http_status_code is not None
            and error.http_status_code in self._config.retryable_http_statuses
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
    ) -> RetryResult[T]:
        """
        Execute an operation, retrying transient failures.

        Args:
            operation: The async operation to execute

        Returns:
            RetryResult with either the operation's result or the last classified error

        Raises:
            ConfigurationError: Propagated immediately, never retried
        """
        max_attempts = self._config.max_retries + 1
        attempts = 0
        last_error: Optional[ClassifiedError] = None

        while attempts < max_attempts:
            attempts += 1
            try:
                result = await operation()
                return RetryResult(success=True, result=result, attempts=attempts, error=None)
            except ConfigurationError:
                raise
            except Exception as e:
                last_error = classify_error(e, self._config.retryable_http_statuses)

            if not self.is_retryable(last_error) or attempts >= max_attempts:
                break

            await self._sleep(self._config.backoff_seconds)

        return RetryResult(success=False, result=None, attempts=attempts, error=last_error)
