"""Relational event store on an async SQLAlchemy engine.

Idempotency is delegated to the database: inserts carry
``ON CONFLICT (id) DO NOTHING``, so any number of concurrent writers of the
same event converge on a single row through the primary key alone.

Sampling uses ``ORDER BY random() LIMIT 1`` over the matching rows, which is
uniform over the filtered set on both PostgreSQL and SQLite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import func, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from pubstream.db.engine import create_engine
from pubstream.db.tables import EventRow
from pubstream.models.event import Event, ensure_utc
from pubstream.store.base import InsertFailedError, QueryFailedError, StorageUnavailableError

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.sql.dml import Insert

_events = EventRow.__table__

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlEventStore:
    """SQLAlchemy implementation of the EventStore protocol.

    The engine is shared by the writer and all reader workers; its connection
    pool provides the concurrency safety.  No application-level locking.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        dialect = engine.dialect.name
        if dialect not in _UPSERT_DIALECTS:
            msg = f"unsupported database dialect {dialect!r} (expected one of {sorted(_UPSERT_DIALECTS)})"
            raise ValueError(msg)
        self._engine = engine
        self._insert = _UPSERT_DIALECTS[dialect]

    @classmethod
    def from_url(cls, database_url: str, **kwargs: object) -> SqlEventStore:
        """Build a store from a URL or a ``postgres://`` DSN.

        Raises ``StorageUnavailableError`` if the URL cannot be parsed, names a
        driver that is not installed, or names an unsupported database.
        """
        try:
            return cls(create_engine(database_url, **kwargs))
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            msg = f"error configuring database: {exc}"
            raise StorageUnavailableError(msg) from exc

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # -- Write -----------------------------------------------------------------

    def _insert_statement(self, event: Event) -> Insert:
        stmt = self._insert(_events).values(
            id=event.id,
            type=event.type,
            time=event.time,
            extra_fields=dict(event.extra_fields),
        )
        return stmt.on_conflict_do_nothing(index_elements=[_events.c.id])

    async def insert_event(self, event: Event) -> None:
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(self._insert_statement(event))
                inserted = result.rowcount
        except SQLAlchemyError as exc:
            msg = f"error creating event {event.id}: {exc}"
            raise InsertFailedError(msg) from exc

        if inserted == 0:
            logger.debug("Event {} already stored, insert skipped", event.id)

    # -- Read ------------------------------------------------------------------

    async def get_event(self, event_type: str, start: datetime, end: datetime) -> Event | None:
        stmt = (
            select(_events.c.id, _events.c.type, _events.c.time, _events.c.extra_fields)
            .where(_events.c.type == event_type)
            .where(_events.c.time.between(ensure_utc(start), ensure_utc(end)))
            .order_by(func.random())
            .limit(1)
        )
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as exc:
            msg = f"error getting event of type {event_type!r}: {exc}"
            raise QueryFailedError(msg) from exc

        if row is None:
            return None

        try:
            return Event(id=row.id, type=row.type, time=row.time, extra_fields=row.extra_fields or {})
        except ValidationError as exc:
            msg = f"error scanning event {row.id}: {exc}"
            raise QueryFailedError(msg) from exc

    # -- Lifecycle -------------------------------------------------------------

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            msg = f"error connecting to database: {exc}"
            raise StorageUnavailableError(msg) from exc

    async def close(self) -> None:
        await self._engine.dispose()
