"""
Retry mechanism for resilient operations.
"""

import asyncio
import random
from typing import Any, Optional, Callable, Awaitable

from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_attempts: int = 1,
                 base_delay: float = 0.5,
                 max_delay: float = 10.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy


class RetryError(Exception):
    """Exception raised when all retry attempts are exhausted."""
    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


async def call_with_retry(func: Callable[..., Awaitable[Any]],
                          *args,
                          exceptions: tuple = (Exception,),
                          config: Optional[RetryConfig] = None,
                          **kwargs) -> Any:
    """Await ``func`` retrying on ``exceptions``; raise RetryError once attempts run out."""
    if config is None:
        config = RetryConfig()

    name = getattr(func, "__name__", repr(func))
    logger = get_logger(f"weather.retry.{name}")

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await func(*args, **kwargs)

            if attempt > 1:
                logger.info("Retry succeeded", attempt=attempt, function=name)

            return result

        except exceptions as e:
            if attempt == config.max_attempts:
                if config.max_attempts > 1:
                    logger.error(
                        "All retry attempts exhausted",
                        attempt=attempt,
                        max_attempts=config.max_attempts,
                        function=name,
                        error=str(e)
                    )
                raise RetryError(
                    f"Function {name} failed after {config.max_attempts} attempts",
                    last_exception=e,
                    attempts=attempt
                ) from e

            delay = _calculate_delay(attempt, config)

            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                delay=delay,
                function=name,
                error=str(e)
            )

            await asyncio.sleep(delay)


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay between retry attempts."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    else:
        delay = config.base_delay

    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
