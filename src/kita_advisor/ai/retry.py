import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from kita_advisor.domain.formatting import format_duration
from kita_advisor.errors import AdvisorError
from kita_advisor.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0


@dataclass
class RetryAttempt:
    attempts_made: int
    max_attempts: int
    base_delay: float

    def next_delay(self) -> float:
        return self.base_delay * 2 ** (self.attempts_made - 1)

    @property
    def exhausted(self) -> bool:
        return self.attempts_made >= self.max_attempts


def is_retryable(error: BaseException) -> bool:
    if isinstance(error, AdvisorError):
        return error.retryable
    return True


class RetryPolicy:
    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if base_delay < 0:
            raise ValueError("base_delay must not be negative")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep

    async def _pause(self, seconds: float) -> None:
        await self._sleep(seconds)

    def _retrying(self, attempt: RetryAttempt) -> AsyncRetrying:
        def log_retry(retry_state: RetryCallState) -> None:
            attempt.attempts_made = retry_state.attempt_number
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "[RETRY] Attempt %s/%s failed (%s). Retrying after %s...",
                attempt.attempts_made,
                attempt.max_attempts,
                error,
                format_duration(attempt.next_delay()),
            )

        return AsyncRetrying(
            stop=stop_after_attempt(attempt.max_attempts),
            wait=wait_exponential(multiplier=attempt.base_delay, exp_base=2),
            retry=retry_if_exception(is_retryable),
            sleep=self._pause,
            before_sleep=log_retry,
            reraise=True,
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int | None = None,
        base_delay: float | None = None,
    ) -> T:
        """
        Run ``operation`` up to ``max_retries`` times.

        Non-retryable errors propagate on the attempt that raised them. When
        every attempt fails, the error from the last one is re-raised as is.
        """
        attempt = RetryAttempt(
            attempts_made=0,
            max_attempts=max_retries if max_retries is not None else self.max_retries,
            base_delay=base_delay if base_delay is not None else self.base_delay,
        )
        if attempt.max_attempts < 1:
            raise ValueError("max_retries must be at least 1")

        try:
            return await self._retrying(attempt)(operation)
        except Exception as exc:
            if is_retryable(exc):
                logger.warning(
                    "[RETRY] Giving up after %s attempts: %s",
                    attempt.max_attempts,
                    exc,
                )
            raise
