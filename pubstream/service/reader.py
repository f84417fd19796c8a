"""Reader: a fixed pool of workers sampling random events.

A coordinator ticks on a fixed cadence and, on every tick, pushes one work
unit per worker through an unbuffered gate (a zero-capacity anyio memory
object stream).  Each send blocks until a worker takes it, so the coordinator
can never run ahead of the pool.  Reads within a tick interleave freely.

Shutdown closes the gate.  Workers finish the read they are doing, then see
the closed gate and leave their loop; an in-flight read is never cancelled.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from contextlib import aclosing
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from pubstream.service.generator import utcnow
from pubstream.service.ticker import ticks
from pubstream.store.base import StoreError

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

    from pubstream.models.event import Event
    from pubstream.models.schema import EventSchema
    from pubstream.store.base import EventStore

WINDOW_SECONDS = 300


class Reader:
    """Worker-pool event sampler."""

    def __init__(
        self,
        store: EventStore,
        schema: EventSchema,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._schema = schema
        self._rng = rng or random.Random()  # noqa: S311
        self._clock = clock
        self._dispatched = 0

    @property
    def dispatched(self) -> int:
        """Number of work units accepted by workers so far."""
        return self._dispatched

    def random_window(self) -> tuple[datetime, datetime]:
        """Return ``(start, end)`` with ``start = now - U[0,300)s`` and ``end = start + U[0,300)s``."""
        start = self._clock() - timedelta(seconds=self._rng.randrange(WINDOW_SECONDS))
        end = start + timedelta(seconds=self._rng.randrange(WINDOW_SECONDS))
        return start, end

    async def read_once(self, worker_id: int = 0) -> Event | None:
        """Sample one random event of a random type and log it."""
        event_type = self._rng.choice(self._schema.event_types)
        start, end = self.random_window()

        try:
            event = await self._store.get_event(event_type, start, end)
        except StoreError as exc:
            logger.error("Worker {}: failed to get event: {}", worker_id, exc)
            return None
        except Exception:
            logger.exception("Worker {}: unexpected error getting event of type {}", worker_id, event_type)
            return None

        if event is None:
            logger.info("Worker {}: no event found for {} between {} and {}", worker_id, event_type, start, end)
            return None

        logger.info("Worker {}: reading event: {}", worker_id, event.to_json())
        return event

    # -- Pool ------------------------------------------------------------------

    async def run(self, stop: anyio.Event, interval: float, workers: int) -> None:
        """Run *workers* readers, each doing one read per *interval* seconds, until *stop* is set."""
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        if workers < 1:
            msg = f"workers must be at least 1, got {workers}"
            raise ValueError(msg)

        logger.info("Reader started (interval={}s, workers={})", interval, workers)
        send, receive = anyio.create_memory_object_stream[int](0)

        async with anyio.create_task_group() as pool:
            for worker_id in range(workers):
                pool.start_soon(self._worker, worker_id, receive.clone())
            receive.close()

            # Leaving this block closes the gate and ends every worker loop.
            async with send, anyio.create_task_group() as coordinator:
                coordinator.start_soon(self._dispatch, send, interval, workers)
                await stop.wait()
                coordinator.cancel_scope.cancel()

        logger.info("Reader stopped (dispatched={})", self._dispatched)

    async def _dispatch(self, send: MemoryObjectSendStream[int], interval: float, workers: int) -> None:
        async with aclosing(ticks(interval)) as ticker:
            async for tick in ticker:
                for _ in range(workers):
                    await send.send(tick)
                    self._dispatched += 1

    async def _worker(self, worker_id: int, receive: MemoryObjectReceiveStream[int]) -> None:
        async with receive:
            async for tick in receive:
                logger.trace("Worker {}: tick {}", worker_id, tick)
                await self.read_once(worker_id)
        logger.debug("Worker {}: gate closed, exiting", worker_id)
