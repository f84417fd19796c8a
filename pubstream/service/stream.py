"""Stream service: owns one writer and one reader over a shared store.

The two components are built independently and hold no state in common
beyond the store handle and the read-only schema.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from pubstream.service.generator import EventGenerator
from pubstream.service.reader import Reader
from pubstream.service.writer import Writer

if TYPE_CHECKING:
    import anyio

    from pubstream.models.schema import EventSchema
    from pubstream.store.base import EventStore


class StreamService:
    def __init__(self, store: EventStore, schema: EventSchema, *, seed: int | None = None) -> None:
        self.writer = Writer(store, EventGenerator(schema, rng=random.Random(seed)))  # noqa: S311
        self.reader = Reader(store, schema, rng=random.Random(seed))  # noqa: S311

    async def run_writer(self, stop: anyio.Event, interval: float) -> None:
        await self.writer.run(stop, interval)

    async def run_reader(self, stop: anyio.Event, interval: float, workers: int) -> None:
        await self.reader.run(stop, interval, workers)
