"""Retry strategies using Strategy Pattern."""
import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import RetryConfig
from ...logging import get_logger

T = TypeVar('T')

BeforeRetryHook = Callable[[int, BaseException], Awaitable[None]]


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, error: BaseException, attempt: int, max_attempts: int) -> bool:
        """Determines if a failed attempt should be retried."""
        pass

    @abstractmethod
    def calculate_delay(self, attempt: int) -> float:
        """Delay before the next attempt."""
        pass

    async def wait_async(self, attempt: int):
        """Waits before retry."""
        delay = self.calculate_delay(attempt)
        if delay > 0:
            await asyncio.sleep(delay)


class ExponentialBackoffStrategy(RetryStrategy):
    """Exponential backoff retry strategy for errors flagged ``retryable``."""

    def __init__(self, config: Optional[RetryConfig] = None):
        self._config = config or RetryConfig()

    def should_retry(self, error: BaseException, attempt: int, max_attempts: int) -> bool:
        """Retries transient errors while attempts remain."""
        return getattr(error, 'retryable', False) and attempt + 1 < max_attempts

    def calculate_delay(self, attempt: int) -> float:
        return self._config.calculate_delay(attempt)


class RetryPolicy:
    """
    Runs an async operation under a retry strategy.

    One instance is shared by chunk uploads, direct uploads and finalize
    calls so that backoff behaves the same everywhere.

    Example:
        >>> policy = RetryPolicy(RetryConfig(max_attempts=3))
        >>> url = await policy.run(lambda: client.upload_whole(...), description='direct upload')
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        strategy: Optional[RetryStrategy] = None
    ):
        self._config = config or RetryConfig()
        self._strategy = strategy or ExponentialBackoffStrategy(self._config)
        self._logger = get_logger('podupload.retry')

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = 'request',
        max_attempts: Optional[int] = None,
        before_retry: Optional[BeforeRetryHook] = None,
        on_attempt: Optional[Callable[[int], None]] = None
    ) -> T:
        """
        Execute ``operation`` until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            description: Label used in log messages
            max_attempts: Override of the configured attempt count
            before_retry: Awaited with (attempt, error) before each retry;
                raising from it aborts the retry loop with that exception
            on_attempt: Called with the 1-based attempt number before each attempt

        Returns:
            The operation's result

        Raises:
            The last error once it is not retryable or attempts are exhausted
        """
        attempts = max_attempts or self._config.max_attempts
        attempt = 0
        while True:
            if on_attempt:
                on_attempt(attempt + 1)
            try:
                return await operation()
            except Exception as e:
                if not self._strategy.should_retry(e, attempt, attempts):
                    if getattr(e, 'retryable', False):
                        self._logger.error(
                            f"{description} failed after {attempt + 1} attempt(s): {e}"
                        )
                    raise
                self._logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{attempts}): {e}; retrying"
                )
                if before_retry:
                    await before_retry(attempt + 1, e)
                await self._strategy.wait_async(attempt)
                attempt += 1
