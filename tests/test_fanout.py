from __future__ import annotations

import asyncio

import pytest

from copy_studio.fanout import fan_out


def _delayed(value: str, delay: float, finished: list):
    async def unit() -> str:
        await asyncio.sleep(delay)
        finished.append(value)
        return value

    return unit


@pytest.mark.asyncio
async def test_results_follow_input_order_not_completion_order() -> None:
    finished: list = []
    units = {key: _delayed(key, delay, finished) for key, delay in [("a", 0.03), ("b", 0.02), ("c", 0.01)]}

    outcomes = await fan_out(units)

    assert finished == ["c", "b", "a"]
    assert list(outcomes) == ["a", "b", "c"]
    assert [outcome.value for outcome in outcomes.values()] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_failure_does_not_cancel_siblings() -> None:
    finished: list = []

    async def broken() -> str:
        raise ValueError("bad unit")

    outcomes = await fan_out({"broken": broken, "slow": _delayed("slow", 0.02, finished)})

    assert not outcomes["broken"].ok
    assert isinstance(outcomes["broken"].error, ValueError)
    assert outcomes["slow"].ok and outcomes["slow"].value == "slow"
    assert finished == ["slow"]


@pytest.mark.asyncio
async def test_empty_batch() -> None:
    assert await fan_out({}) == {}
