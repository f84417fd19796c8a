"""Process wiring for the ``writer`` and ``reader`` run modes.

Startup failures (unreadable schema, unreachable database) propagate to the
caller and abort the run.  Once running, SIGINT/SIGTERM set the shared stop
event and the active mode winds down cooperatively.
"""

from __future__ import annotations

import signal
from pathlib import Path

import anyio
from loguru import logger
from sqlalchemy import make_url

from pubstream.models.enums import RunMode
from pubstream.models.schema import EventSchema
from pubstream.service.stream import StreamService
from pubstream.store.sql import SqlEventStore


async def run(
    mode: RunMode,
    *,
    database_url: str,
    schema_path: str | Path,
    interval: float,
    workers: int = 1,
    stop: anyio.Event | None = None,
) -> None:
    """Run *mode* until a termination signal arrives or *stop* is set.

    Raises ``SchemaError`` or ``StorageUnavailableError`` before anything
    starts if the schema or the database is unusable.
    """
    schema = EventSchema.load(schema_path)
    logger.info("Schema loaded from {} ({} event types)", schema_path, len(schema))

    store = SqlEventStore.from_url(database_url)
    try:
        await store.ping()
        logger.info("Database: connected ({})", make_url(database_url).render_as_string(hide_password=True))

        service = StreamService(store, schema)
        stop = stop or anyio.Event()
        async with anyio.create_task_group() as tg:
            tg.start_soon(_stop_on_signal, stop)
            if mode is RunMode.WRITER:
                await service.run_writer(stop, interval)
            else:
                await service.run_reader(stop, interval, workers)
            tg.cancel_scope.cancel()
    finally:
        await store.close()
        logger.info("Database: disposed")


async def _stop_on_signal(stop: anyio.Event) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            logger.info("Received {}, shutting down", signal.Signals(signum).name)
            stop.set()
            return
