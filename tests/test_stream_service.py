"""Writer and reader running side by side over one store."""

from __future__ import annotations

import anyio
import pytest

from pubstream.models.schema import EventSchema
from pubstream.service.stream import StreamService
from pubstream.store.memory import InMemoryEventStore
from pubstream.store.sql import SqlEventStore


@pytest.mark.anyio
async def test_components_are_independent(schema: EventSchema) -> None:
    service = StreamService(InMemoryEventStore(), schema, seed=1)
    assert service.writer is not StreamService(InMemoryEventStore(), schema).writer
    assert service.writer.written == 0
    assert service.reader.dispatched == 0


@pytest.mark.anyio
async def test_reader_sees_writer_events(schema: EventSchema, log_messages: list[str]) -> None:
    store = InMemoryEventStore()
    service = StreamService(store, schema, seed=42)
    stop = anyio.Event()

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(service.run_writer, stop, 0.01)
            while len(store) < 20:
                await anyio.sleep(0.01)
            tg.start_soon(service.run_reader, stop, 0.02, 4)
            while not any("reading event" in m for m in log_messages):
                await anyio.sleep(0.01)
            stop.set()

    assert service.writer.written >= 20
    assert service.reader.dispatched >= 1


@pytest.mark.anyio
async def test_shared_sqlite_store(schema: EventSchema, sqlite_store: SqlEventStore, log_messages: list[str]) -> None:
    service = StreamService(sqlite_store, schema, seed=7)
    stop = anyio.Event()

    with anyio.fail_after(10):
        async with anyio.create_task_group() as tg:
            tg.start_soon(service.run_writer, stop, 0.01)
            tg.start_soon(service.run_reader, stop, 0.02, 3)
            while service.writer.written < 10 or service.reader.dispatched < 6:
                await anyio.sleep(0.01)
            stop.set()

    assert service.writer.failed == 0
    assert not any("failed to get event" in m for m in log_messages)
