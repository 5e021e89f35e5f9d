"""Bounded retry with exponential backoff and jitter around one unit of work."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception_type, stop_after_attempt

from .exceptions import TaskFailure

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[], Awaitable[T]]
RetryObserver = Callable[[int, BaseException, float], Any]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a unit of work is retried."""

    max_attempts: int = 3
    base_delay_ms: float = 1000
    max_delay_ms: float = 10000
    jitter_ms: float = 500

    def delay_ms(self, attempt: int, jitter_fraction: float) -> float:
        """Delay after failed attempt number *attempt* (1-based).

        ``jitter_fraction`` is a sample from ``[0, 1)`` scaled to ``jitter_ms``.
        """

        backoff = self.base_delay_ms * (2 ** (attempt - 1))
        return min(backoff + jitter_fraction * self.jitter_ms, self.max_delay_ms)


DEFAULT_POLICY = RetryPolicy()
# Single attempt; the caller treats any failure as fatal.
NO_RETRY_POLICY = RetryPolicy(max_attempts=1)


class ResilientInvoker:
    """Run a unit of work under a :class:`RetryPolicy`.

    The invoker does not know what the unit does. It retries on any
    exception, suspends between attempts without blocking the event loop,
    and raises :class:`TaskFailure` once the policy is exhausted.
    """

    def __init__(
        self,
        *,
        sleep: Sleeper = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        self._sleep = sleep
        self._jitter = jitter

    async def invoke(
        self,
        unit: UnitOfWork[T],
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        label: str = "task",
        on_retry: Optional[RetryObserver] = None,
    ) -> T:
        def wait(retry_state: RetryCallState) -> float:
            return policy.delay_ms(retry_state.attempt_number, self._jitter()) / 1000

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            delay = retry_state.next_action.sleep
            logger.warning(
                "task_retry_scheduled",
                task=label,
                attempt=retry_state.attempt_number,
                max_attempts=policy.max_attempts,
                delay_ms=round(delay * 1000),
                error=str(error),
            )
            if on_retry is not None:
                on_retry(retry_state.attempt_number, error, delay)

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait,
            retry=retry_if_exception_type(Exception),
            before_sleep=before_sleep,
            reraise=False,
        )
        try:
            return await retrying(unit)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_error = last_attempt.exception()
            logger.error("task_retries_exhausted", task=label, attempts=last_attempt.attempt_number, error=str(last_error))
            raise TaskFailure(label, last_attempt.attempt_number, last_error) from last_error
