"""Async SQLAlchemy engine factory.

PostgreSQL uses psycopg3, which supports both sync and async with the same
``postgresql+psycopg://`` URL.  SQLite uses ``sqlite+aiosqlite://``.
"""

from __future__ import annotations

from sqlalchemy import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pubstream.db.tables import Base


# Bare schemes map to the async driver pubstream ships with.
_ASYNC_DRIVERS = {
    "postgres": "postgresql+psycopg",
    "postgresql": "postgresql+psycopg",
    "sqlite": "sqlite+aiosqlite",
}


def async_database_url(database_url: str | URL) -> URL:
    """Parse *database_url*, accepting libpq-style ``postgres://`` DSNs.

    Raises ``sqlalchemy.exc.ArgumentError`` if the string is not a URL.
    """
    url = make_url(database_url)
    driver = _ASYNC_DRIVERS.get(url.drivername)
    return url.set(drivername=driver) if driver else url


def create_engine(database_url: str | URL, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The writer and every reader worker share this engine, so pooled backends
    get a pool large enough for a default reader pool of ten workers:

    - **pool_size=10**: one connection per default reader worker.
    - **max_overflow=5**: headroom for the writer and bursts.
    - **pool_pre_ping=True**: test connections before checkout to handle
      server-side disconnects.
    - **pool_recycle=3600**: recycle connections after 1 hour.

    SQLite gets no pool tuning (in-memory databases use a static pool).
    All defaults can be overridden via *kwargs*.
    """
    url = async_database_url(database_url)
    defaults: dict[str, object] = {"echo": False}
    if url.get_backend_name() != "sqlite":
        defaults.update(pool_size=10, max_overflow=5, pool_pre_ping=True, pool_recycle=3600)
    defaults.update(kwargs)
    return create_async_engine(url, **defaults)


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables directly from metadata.

    Meant for SQLite files and tests; PostgreSQL deployments use the Alembic
    migrations (``pubstream db upgrade``).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
