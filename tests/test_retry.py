from __future__ import annotations

from typing import List

import pytest

from copy_studio.exceptions import ProviderCallFailure, TaskFailure
from copy_studio.retry import DEFAULT_POLICY, NO_RETRY_POLICY, ResilientInvoker, RetryPolicy


class FlakyUnit:
    """Fails a fixed number of times, then returns ``"ok"``."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ProviderCallFailure(f"boom {self.calls}")
        return "ok"


def test_delay_grows_exponentially_and_is_capped() -> None:
    policy = RetryPolicy()

    assert policy.delay_ms(1, 0.0) == 1000
    assert policy.delay_ms(2, 0.0) == 2000
    assert policy.delay_ms(3, 0.0) == 4000
    assert policy.delay_ms(5, 0.5) == 10000


@pytest.mark.parametrize("attempt", [1, 2, 3])
def test_jitter_stays_within_bounds(attempt: int) -> None:
    policy = RetryPolicy()
    base = policy.base_delay_ms * 2 ** (attempt - 1)

    assert base <= policy.delay_ms(attempt, 0.0) <= policy.delay_ms(attempt, 0.999) < base + policy.jitter_ms


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures(invoker: ResilientInvoker, sleeps: List[float]) -> None:
    unit = FlakyUnit(failures=2)

    assert await invoker.invoke(unit, DEFAULT_POLICY, label="flaky") == "ok"
    assert unit.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_raises_task_failure_after_max_attempts(invoker: ResilientInvoker, sleeps: List[float]) -> None:
    unit = FlakyUnit(failures=10)

    with pytest.raises(TaskFailure) as excinfo:
        await invoker.invoke(unit, DEFAULT_POLICY, label="always-failing")

    failure = excinfo.value
    assert unit.calls == DEFAULT_POLICY.max_attempts
    assert failure.attempts == 3
    assert failure.label == "always-failing"
    assert str(failure.last_error) == "boom 3"
    assert failure.__cause__ is failure.last_error
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_single_attempt_policy_never_sleeps(invoker: ResilientInvoker, sleeps: List[float]) -> None:
    unit = FlakyUnit(failures=1)

    with pytest.raises(TaskFailure):
        await invoker.invoke(unit, NO_RETRY_POLICY, label="critical")

    assert unit.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_jitter_source_and_observer_are_used() -> None:
    slept: List[float] = []
    observed = []

    async def record(seconds: float) -> None:
        slept.append(seconds)

    invoker = ResilientInvoker(sleep=record, jitter=lambda: 0.5)
    unit = FlakyUnit(failures=2)

    await invoker.invoke(
        unit,
        RetryPolicy(max_attempts=4),
        label="observed",
        on_retry=lambda attempt, error, delay: observed.append((attempt, str(error), delay)),
    )

    assert slept == [1.25, 2.25]
    assert observed == [(1, "boom 1", 1.25), (2, "boom 2", 2.25)]
