"""Exponential-backoff retry executor for fallible async operations."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)
from tenacity.wait import wait_base

from econfeed.config.settings import Settings
from econfeed.ingestion.exceptions import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry an operation with constant or geometrically growing delays.

    One initial attempt is followed by up to ``max_retries`` retries. The
    n-th retry waits ``initial_delay_ms * factor**n`` with backoff enabled,
    ``initial_delay_ms`` otherwise. Only ``retry_on`` exceptions are retried;
    anything else propagates on the first failure.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying)
        initial_delay_ms: Delay before the first retry
        backoff: Grow delays geometrically
        factor: Growth factor when backoff is enabled
        sleep: Awaitable sleep, replaceable for tests
    """

    max_retries: int = 3
    initial_delay_ms: int = 1000
    backoff: bool = True
    factor: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (TransportError,)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        """Build the policy described by the retry_* settings."""
        return cls(
            max_retries=settings.retry_max_retries if settings.retry_enabled else 0,
            initial_delay_ms=settings.retry_initial_delay_ms,
            backoff=settings.retry_backoff_enabled,
            factor=settings.retry_backoff_factor,
        )

    def _wait(self) -> wait_base:
        initial = self.initial_delay_ms / 1000.0
        if self.backoff:
            return wait_exponential(multiplier=initial, exp_base=self.factor, min=initial)
        return wait_fixed(initial)

    def delays(self) -> list[float]:
        """Planned sleep before each retry, in seconds."""
        initial = self.initial_delay_ms / 1000.0
        if not self.backoff:
            return [initial] * self.max_retries
        return [initial * self.factor**n for n in range(self.max_retries)]

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Attempt {retry_state.attempt_number} failed: {exc}; "
            f"retrying in {delay * 1000:.0f}ms"
        )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` until it succeeds or retries are exhausted.

        Returns:
            The operation's result

        Raises:
            The last exception raised by the operation
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait(),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await operation()
        raise RuntimeError("retry loop ended without a result")
