"""Unit tests for the ticker-driven writer."""

from __future__ import annotations

import random
from datetime import UTC, datetime

import anyio
import pytest
from sqlalchemy import text

from pubstream.db.engine import create_engine, create_tables
from pubstream.models.event import Event, new_event
from pubstream.models.schema import EventSchema
from pubstream.service.generator import EventGenerator
from pubstream.service.writer import Writer
from pubstream.store.base import InsertFailedError
from pubstream.store.memory import InMemoryEventStore
from pubstream.store.sql import SqlEventStore


class FlakyStore(InMemoryEventStore):
    """Fails every other insert; sets *stop* once *limit* inserts were attempted."""

    def __init__(self, stop: anyio.Event, limit: int) -> None:
        super().__init__()
        self.stop = stop
        self.limit = limit
        self.attempts = 0

    async def insert_event(self, event: Event) -> None:
        self.attempts += 1
        if self.attempts >= self.limit:
            self.stop.set()
        if self.attempts % 2 == 0:
            msg = "connection reset"
            raise InsertFailedError(msg)
        await super().insert_event(event)


class StoppingSqlStore(SqlEventStore):
    """Sets *stop* from inside the *limit*-th insert, before it reaches the database."""

    def __init__(self, engine, stop: anyio.Event, limit: int) -> None:
        super().__init__(engine)
        self.stop = stop
        self.limit = limit
        self.attempts = 0

    async def insert_event(self, event: Event) -> None:
        self.attempts += 1
        if self.attempts >= self.limit:
            self.stop.set()
            await anyio.sleep(0)
        await super().insert_event(event)


class BrokenStore(InMemoryEventStore):
    async def insert_event(self, event: Event) -> None:
        msg = "driver bug"
        raise RuntimeError(msg)


def _writer(store, schema: EventSchema) -> Writer:
    return Writer(store, EventGenerator(schema, rng=random.Random(1)))


@pytest.mark.anyio
async def test_write_once_inserts(schema: EventSchema) -> None:
    store = InMemoryEventStore()
    writer = _writer(store, schema)

    event = await writer.write_once()

    assert event is not None
    assert store.all_events() == [event]
    assert writer.written == 1
    assert writer.failed == 0


@pytest.mark.anyio
async def test_write_once_logs_store_errors(schema: EventSchema, log_messages: list[str]) -> None:
    store = FlakyStore(anyio.Event(), limit=100)
    writer = _writer(store, schema)

    assert await writer.write_once() is not None
    assert await writer.write_once() is None

    assert writer.written == 1
    assert writer.failed == 1
    assert any("Failed to create event" in m and "connection reset" in m for m in log_messages)


@pytest.mark.anyio
async def test_write_once_survives_unexpected_errors(schema: EventSchema, log_messages: list[str]) -> None:
    writer = _writer(BrokenStore(), schema)

    assert await writer.write_once() is None
    assert writer.failed == 1
    assert any("Unexpected error creating event" in m for m in log_messages)


@pytest.mark.anyio
async def test_run_keeps_going_after_failures(schema: EventSchema) -> None:
    stop = anyio.Event()
    store = FlakyStore(stop, limit=6)
    writer = _writer(store, schema)

    with anyio.fail_after(5):
        await writer.run(stop, interval=0.01)

    assert store.attempts == 6
    assert writer.failed == 3
    assert writer.written == 3
    assert len(store) == 3


@pytest.mark.anyio
async def test_run_returns_when_stopped(schema: EventSchema, log_messages: list[str]) -> None:
    stop = anyio.Event()
    store = InMemoryEventStore()
    writer = _writer(store, schema)

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(writer.run, stop, 10.0)
            await anyio.sleep(0.05)
            stop.set()

    assert len(store) == 0
    assert any("Writer stopped" in m for m in log_messages)


@pytest.mark.anyio
async def test_run_already_stopped(schema: EventSchema) -> None:
    stop = anyio.Event()
    stop.set()
    writer = _writer(InMemoryEventStore(), schema)

    with anyio.fail_after(1):
        await writer.run(stop, interval=0.01)

    assert writer.written == 0


@pytest.mark.anyio
async def test_run_against_sqlite(schema: EventSchema, sqlite_store: SqlEventStore) -> None:
    stop = anyio.Event()
    writer = _writer(sqlite_store, schema)

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(writer.run, stop, 0.01)
            while writer.written < 3:
                await anyio.sleep(0.01)
            stop.set()

    async with sqlite_store.engine.connect() as conn:
        count = (await conn.execute(text("SELECT COUNT(*) FROM events"))).scalar_one()
    assert count >= 3


@pytest.mark.parametrize("attempt", range(20))
@pytest.mark.anyio
async def test_stop_during_insert_leaves_store_usable(schema: EventSchema, sqlite_url: str, attempt: int) -> None:
    engine = create_engine(sqlite_url)
    await create_tables(engine)
    stop = anyio.Event()
    store = StoppingSqlStore(engine, stop, limit=3)
    writer = _writer(store, schema)

    with anyio.fail_after(5):
        await writer.run(stop, interval=0.001)

        # The insert that was running when stop was set still lands.
        assert writer.written == 3
        assert writer.failed == 0

        extra = new_event("page_view", datetime(2024, 5, 1, 12, 0, tzinfo=UTC), {"user_id": attempt, "page_id": 1})
        await store.insert_event(extra)
        async with engine.connect() as conn:
            count = (await conn.execute(text("SELECT COUNT(*) FROM events"))).scalar_one()
        assert count == 4

        await store.close()


@pytest.mark.parametrize("interval", [0, -0.5])
@pytest.mark.anyio
async def test_run_rejects_bad_interval(schema: EventSchema, interval: float) -> None:
    writer = _writer(InMemoryEventStore(), schema)
    with pytest.raises(ValueError, match="interval must be positive"):
        await writer.run(anyio.Event(), interval)
