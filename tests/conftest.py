"""Shared test fixtures.

Unit tests run against SQLite files in ``tmp_path`` (via aiosqlite) or the
in-memory store.  Integration tests use a real PostgreSQL container managed
by testcontainers-python; the container is session-scoped and the ``events``
table is truncated after each test.

Tests needing Docker are marked with ``@pytest.mark.integration``.
"""

from __future__ import annotations

import json
import os
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from loguru import logger
from testcontainers.postgres import PostgresContainer

from pubstream.db.engine import create_engine, create_tables
from pubstream.models.schema import EventSchema
from pubstream.settings import get_settings
from pubstream.store.sql import SqlEventStore

SCHEMA_DOC = {
    "page_view": {"type_mapping": {"time": "bigint", "user_id": "int", "page_id": "bigint"}},
    "purchase": {"type_mapping": {"time": "bigint", "amount": "int", "sku": "text"}},
}


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Run async tests on asyncio only (SQLAlchemy's async engine needs asyncio)."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep PUBSTREAM_* from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("PUBSTREAM_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


@pytest.fixture
def schema() -> EventSchema:
    return EventSchema.from_dict(SCHEMA_DOC)


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(SCHEMA_DOC), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="TRACE")
    yield messages
    logger.remove(handler_id)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'events.db'}"


@pytest.fixture
async def sqlite_store(sqlite_url: str) -> AsyncIterator[SqlEventStore]:
    engine = create_engine(sqlite_url)
    await create_tables(engine)
    store = SqlEventStore(engine)
    yield store
    await store.close()


# ---------------------------------------------------------------------------
# PostgreSQL (integration)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="pubstream_test",
        driver="psycopg",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()

    from alembic import command
    from alembic.config import Config

    ini_path = Path(__file__).parent.parent / "pubstream" / "alembic.ini"
    cfg = Config(str(ini_path))
    cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(cfg, "head")

    return url
