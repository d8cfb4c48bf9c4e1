# core/services/polling.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Protocol, Tuple, Type, TypeVar

from core.services.exceptions import ChainClientError, GetterDecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Clock(Protocol):
    def now(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class MonotonicClock:
    """
    Real clock: monotonic time plus cancellable asyncio sleep.
    """

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


@dataclass(frozen=True)
class PollResult(Generic[T]):
    value: Optional[T]
    satisfied: bool
    attempts: int
    elapsed: float

    @property
    def timed_out(self) -> bool:
        return not self.satisfied


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool],
    *,
    timeout: float,
    interval: float,
    clock: Optional[Clock] = None,
    label: str = "poll",
    retry_on: Tuple[Type[BaseException], ...] = (ChainClientError, GetterDecodeError),
) -> PollResult[T]:
    """
    Call `fetch` every `interval` seconds until `predicate(value)` holds or
    `timeout` seconds have elapsed.

    - The last check happens at the deadline itself, so a timeout is reported
      at exactly `timeout`, never earlier and never one interval later.
    - Errors listed in `retry_on` count as a failed attempt; anything else
      propagates.
    - Cancelling the awaiting task cancels the pending sleep.
    """
    if timeout < 0:
        raise ValueError("timeout must be >= 0")
    if interval <= 0:
        raise ValueError("interval must be > 0")

    clk = clock or MonotonicClock()
    started = clk.now()
    deadline = started + float(timeout)
    attempts = 0
    last: Optional[T] = None

    while True:
        attempts += 1
        try:
            value = await fetch()
        except retry_on as exc:
            level = logging.WARNING if isinstance(exc, GetterDecodeError) else logging.DEBUG
            logger.log(level, "%s: attempt %d failed: %s", label, attempts, exc)
        else:
            last = value
            if predicate(value):
                return PollResult(value=value, satisfied=True, attempts=attempts, elapsed=clk.now() - started)

        remaining = deadline - clk.now()
        if remaining <= 0:
            logger.info("%s: gave up after %.1fs (%d attempts)", label, clk.now() - started, attempts)
            return PollResult(value=last, satisfied=False, attempts=attempts, elapsed=clk.now() - started)

        await clk.sleep(min(float(interval), remaining))
