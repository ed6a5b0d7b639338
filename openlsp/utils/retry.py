"""Backoff retries for read-only node calls.

Only idempotent reads go through here (invoice decoding, channel listings,
forwarding history). Paying an invoice or sending onchain funds is never
retried: without an idempotency token a second attempt can pay twice.

Usage:
    channels = await retry_async(
        lambda: client.get_channels(),
        config=NODE_READ_RETRY,
        operation="list_channels",
    )
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from openlsp.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[Exception, int], Awaitable[None]]


@dataclass(frozen=True)
class RetryConfig:
    """Backoff schedule for one class of calls.

    Attributes:
        max_retries: Attempts after the first one (0 disables retries)
        base_delay: Seconds before the first retry
        max_delay: Upper bound for any single delay
        backoff_factor: Multiplier applied per attempt
        jitter: Spread delays by up to ``jitter_range`` of their value
        jitter_range: Fraction of the delay used for jitter
        retryable_exceptions: Only these are retried; anything else propagates at once
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    backoff_factor: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.1
    retryable_exceptions: tuple[type[Exception], ...] = field(default_factory=lambda: (Exception,))

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        if not 0 <= self.jitter_range <= 1:
            raise ValueError("jitter_range must be between 0 and 1")

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``."""
        delay = min(self.base_delay * self.backoff_factor**attempt, self.max_delay)
        if not self.jitter:
            return delay

        spread = delay * self.jitter_range
        return max(0.0, delay + random.uniform(-spread, spread))

    def is_retryable(self, error: Exception) -> bool:
        return isinstance(error, self.retryable_exceptions)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    on_retry: RetryCallback | None = None,
    *,
    operation: str = "call",
) -> T:
    """Await ``func()`` until it succeeds or the retry budget is spent.

    Args:
        func: Zero-argument coroutine factory
        config: Backoff schedule (defaults to ``RetryConfig()``)
        on_retry: Awaited before each retry with the error and retry number;
            its own failures are logged and do not stop the retries
        operation: Label used in log events

    Raises:
        The last error once retries are exhausted, or the first error that is
        not retryable.
    """
    config = config or RetryConfig()
    attempt = 0

    while True:
        try:
            return await func()
        except Exception as e:
            if not config.is_retryable(e):
                logger.debug(
                    "retry_skipped_non_retryable_exception",
                    operation=operation,
                    exception_type=type(e).__name__,
                )
                raise

            if attempt >= config.max_retries:
                logger.error(
                    "retry_exhausted",
                    operation=operation,
                    attempts=attempt + 1,
                    exception=type(e).__name__,
                    error=str(e),
                )
                raise

            delay = config.calculate_delay(attempt)
            attempt += 1
            logger.info(
                "retry_attempt",
                operation=operation,
                attempt=attempt,
                max_retries=config.max_retries,
                delay_seconds=round(delay, 2),
                error=str(e),
            )

            if on_retry:
                try:
                    await on_retry(e, attempt)
                except Exception as callback_error:
                    logger.warning(
                        "retry_callback_failed", operation=operation, error=str(callback_error)
                    )

            await asyncio.sleep(delay)


# Transient failures reaching the local node
NODE_READ_RETRY = RetryConfig(max_retries=3, base_delay=0.5, max_delay=5.0)
