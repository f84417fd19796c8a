"""Writer: the producer side of the stream.

On every tick the writer generates one random event from the schema and
inserts it.  Insert failures are logged and the loop carries on; a single
bad tick never stops the writer.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from pubstream.service.ticker import ticks
from pubstream.store.base import StoreError

if TYPE_CHECKING:
    from pubstream.models.event import Event
    from pubstream.service.generator import EventGenerator
    from pubstream.store.base import EventStore


class Writer:
    """Ticker-driven event producer."""

    def __init__(self, store: EventStore, generator: EventGenerator) -> None:
        self._store = store
        self._generator = generator
        self._written = 0
        self._failed = 0

    @property
    def written(self) -> int:
        """Number of successful insert calls (duplicates included)."""
        return self._written

    @property
    def failed(self) -> int:
        return self._failed

    async def write_once(self) -> Event | None:
        """Generate and insert one event.  Returns ``None`` if the insert failed."""
        event = self._generator.generate()
        try:
            # An insert cancelled mid-statement leaves the pooled connection unusable.
            with anyio.CancelScope(shield=True):
                await self._store.insert_event(event)
        except StoreError as exc:
            self._failed += 1
            logger.error("Failed to create event {} (type={}): {}", event.id, event.type, exc)
            return None
        except Exception:
            self._failed += 1
            logger.exception("Unexpected error creating event {} (type={})", event.id, event.type)
            return None

        self._written += 1
        logger.debug("Wrote event {} (type={})", event.id, event.type)
        return event

    async def run(self, stop: anyio.Event, interval: float) -> None:
        """Write one event per *interval* seconds until *stop* is set.

        Setting *stop* ends the loop while it waits for the next tick; an insert
        already in flight runs to completion first.
        """
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)

        logger.info(
            "Writer started (interval={}s, event_types={})",
            interval,
            list(self._generator.schema.event_types),
        )
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._loop, interval)
            await stop.wait()
            tg.cancel_scope.cancel()
        logger.info("Writer stopped (written={}, failed={})", self._written, self._failed)

    async def _loop(self, interval: float) -> None:
        async with aclosing(ticks(interval)) as ticker:
            async for _ in ticker:
                await self.write_once()
