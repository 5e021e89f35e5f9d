"""Structured fan-out/fan-in over independent units of work."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Hashable, Mapping, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Settled result of one unit: a value, or the error it raised."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle(unit: Callable[[], Awaitable[T]]) -> Outcome[T]:
    """Await *unit* and capture any exception it raises as an :class:`Outcome`."""

    try:
        return Outcome(value=await unit())
    except Exception as exc:
        return Outcome(error=exc)


async def fan_out(units: Mapping[K, Callable[[], Awaitable[T]]]) -> Dict[K, Outcome[T]]:
    """Run every unit concurrently and wait until all of them settle.

    A failing unit never cancels its siblings. The returned mapping follows
    the key order of *units*, whatever order the units finished in.
    """

    keys = list(units)
    outcomes = await asyncio.gather(*(settle(units[key]) for key in keys))
    return dict(zip(keys, outcomes))
