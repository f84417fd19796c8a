"""Alembic environment for the ``events`` table.

The URL comes from ``pubstream --database-url ... db upgrade`` (set on the
config by the CLI) or from PUBSTREAM_DATABASE_URL.  Migrations run on a sync
engine, so async driver names are mapped to their sync equivalents first.
SQLite gets batch mode because it cannot ALTER most constraints in place.
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, make_url, pool

from pubstream.db.tables import Base
from pubstream.settings import StreamSettings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

_SYNC_DRIVERS = {
    "postgres": "postgresql+psycopg",
    "postgresql": "postgresql+psycopg",
    "postgresql+asyncpg": "postgresql+psycopg",
    "sqlite+aiosqlite": "sqlite",
}


def get_url() -> str:
    url = config.get_main_option("sqlalchemy.url") or StreamSettings().database_url
    if not url:
        msg = "No database URL: pass --database-url or set PUBSTREAM_DATABASE_URL."
        raise RuntimeError(msg)
    parsed = make_url(url)
    sync_driver = _SYNC_DRIVERS.get(parsed.drivername)
    if sync_driver:
        parsed = parsed.set(drivername=sync_driver)
    return parsed.render_as_string(hide_password=False)


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """Leave tables that pubstream does not own out of autogenerate."""
    return not (type_ == "table" and reflected and compare_to is None)


def _configure(url: str, **kwargs: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        render_as_batch=make_url(url).get_backend_name() == "sqlite",
        **kwargs,
    )


def run_migrations_offline() -> None:
    url = get_url()
    _configure(url, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    connectable = create_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(url, connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
