"""Fixed-cadence ticker for the writer and the reader coordinator."""

from __future__ import annotations

import math
from collections.abc import AsyncIterator

import anyio


async def ticks(interval: float) -> AsyncIterator[int]:
    """Yield 1, 2, 3, ... once per *interval* seconds, first tick one interval from now.

    The cadence is anchored to the start time rather than to the end of each
    cycle.  Ticks that fall due while the consumer is still busy are dropped,
    so a slow cycle is followed by the next slot on the grid instead of a burst.
    Cancellation is observed while waiting for the next tick.
    """
    if interval <= 0:
        msg = f"interval must be positive, got {interval}"
        raise ValueError(msg)

    tick = 0
    next_at = anyio.current_time() + interval
    while True:
        await anyio.sleep_until(next_at)
        tick += 1
        yield tick

        next_at += interval
        now = anyio.current_time()
        if next_at <= now:
            next_at += (math.floor((now - next_at) / interval) + 1) * interval
