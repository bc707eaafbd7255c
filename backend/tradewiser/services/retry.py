"""
Retry helper with bounded exponential backoff

delay(i) = min(base_delay * backoff_factor ** i, max_delay), i counted from 0.
Delays and durations are in seconds.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import httpx

from tradewiser.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_error(error: BaseException) -> bool:
    """Network errors, timeouts and 5xx responses are worth retrying"""
    if isinstance(error, httpx.HTTPStatusError):
        return 500 <= error.response.status_code < 600
    if isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return 500 <= status < 600
    return False


def _is_client_error(error: BaseException) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return 400 <= error.response.status_code < 500
    status = getattr(error, "status_code", None)
    return isinstance(status, int) and 400 <= status < 500


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    retry_condition: Optional[Callable[[BaseException], bool]] = field(default=is_retryable_error)


@dataclass
class RetryResult(Generic[T]):
    success: bool
    attempts: int
    total_time: float
    result: Optional[T] = None
    error: Optional[BaseException] = None


class RetryService:
    """Runs an async operation until it succeeds, the error is not retryable, or attempts run out"""

    def __init__(self, default_config: Optional[RetryConfig] = None, sleep: Callable[[float], Awaitable[Any]] = None):
        self.default_config = default_config or RetryConfig()
        self._sleep = sleep or asyncio.sleep

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        config: Optional[RetryConfig] = None,
        **overrides: Any
    ) -> RetryResult[T]:
        """
        Execute ``operation`` with retries

        Args:
            operation: zero-argument coroutine function
            config: full config, defaults to the service default
            overrides: individual RetryConfig fields to override

        Returns:
            RetryResult with the value of the first successful call, or the last error
        """
        final_config = replace(config or self.default_config, **overrides)
        start_time = time.monotonic()
        last_error: Optional[BaseException] = None
        attempt = 0

        while attempt < final_config.max_attempts:
            attempt += 1
            try:
                logger.debug(f"🔄 Attempt {attempt}/{final_config.max_attempts}")
                result = await operation()
                total_time = time.monotonic() - start_time
                if attempt > 1:
                    logger.info(f"✅ Operation succeeded on attempt {attempt} ({total_time:.2f}s)")
                return RetryResult(success=True, result=result, attempts=attempt, total_time=total_time)
            except Exception as e:
                last_error = e
                logger.warning(f"❌ Attempt {attempt} failed: {e}")

                if attempt >= final_config.max_attempts:
                    break
                retryable = final_config.retry_condition(e) if final_config.retry_condition else False
                if not retryable:
                    logger.info("🚫 Error not retryable, giving up")
                    break

                delay = self.calculate_delay(attempt - 1, final_config)
                logger.debug(f"⏳ Waiting {delay:.2f}s before retry")
                await self._sleep(delay)

        total_time = time.monotonic() - start_time
        logger.error(f"💥 Operation failed after {attempt} attempt(s) ({total_time:.2f}s)")
        return RetryResult(success=False, error=last_error, attempts=attempt, total_time=total_time)

    @staticmethod
    def calculate_delay(attempt_number: int, config: RetryConfig) -> float:
        delay = config.base_delay * (config.backoff_factor ** attempt_number)
        return min(delay, config.max_delay)

    # Presets for the different call sites

    def webhook_config(self) -> RetryConfig:
        # 4xx from a webhook receiver means the payload is wrong, retrying will not help
        return RetryConfig(
            max_attempts=3,
            base_delay=1.0,
            max_delay=10.0,
            backoff_factor=2.0,
            retry_condition=lambda e: not _is_client_error(e) and is_retryable_error(e)
        )

    def outbound_api_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=settings.OUTBOUND_API_RETRY_ATTEMPTS,
            base_delay=2.0,
            max_delay=30.0,
            backoff_factor=2.5,
            retry_condition=is_retryable_error
        )

    def health_check_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=2,
            base_delay=0.5,
            max_delay=2.0,
            backoff_factor=2.0,
            retry_condition=is_retryable_error
        )


retry_service = RetryService()
