from __future__ import annotations

from dataclasses import dataclass

import click

from pubstream.models.enums import RunMode
from pubstream.settings import get_settings


@dataclass
class _Options:
    database_url: str | None
    schema_path: str | None


@click.group()
@click.version_option(package_name="pubstream")
@click.option(
    "--database-url",
    "--db-source-name",
    "database_url",
    default=None,
    help="SQLAlchemy async database URL (default: from PUBSTREAM_DATABASE_URL).",
)
@click.option(
    "--schema",
    "schema_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to the JSON event schema (default: from PUBSTREAM_SCHEMA_PATH).",
)
@click.pass_context
def main(ctx: click.Context, database_url: str | None, schema_path: str | None) -> None:
    """pubstream - simulate a pub/sub event stream on a relational store."""
    ctx.obj = _Options(database_url=database_url, schema_path=schema_path)


@main.command()
@click.option(
    "--interval",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between writes (default: from PUBSTREAM_WRITE_INTERVAL or 5).",
)
@click.pass_obj
def writer(opts: _Options, interval: float | None) -> None:
    """Start the database writer."""
    settings = get_settings()
    _run_mode(RunMode.WRITER, opts, interval=interval or settings.write_interval)


@main.command()
@click.option(
    "--interval",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between read rounds (default: from PUBSTREAM_READ_INTERVAL or 1).",
)
@click.option(
    "--workers",
    default=None,
    type=click.IntRange(min=1),
    help="Number of reader workers (default: from PUBSTREAM_READER_WORKERS or 10).",
)
@click.pass_obj
def reader(opts: _Options, interval: float | None, workers: int | None) -> None:
    """Start the database reader pool."""
    settings = get_settings()
    _run_mode(
        RunMode.READER,
        opts,
        interval=interval or settings.read_interval,
        workers=workers or settings.reader_workers,
    )


def _run_mode(mode: RunMode, opts: _Options, *, interval: float, workers: int = 1) -> None:
    from functools import partial

    import anyio

    from pubstream.log import setup_logging
    from pubstream.models.schema import SchemaError
    from pubstream.runner import run
    from pubstream.store.base import StorageUnavailableError

    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    database_url = opts.database_url or settings.database_url
    if not database_url:
        msg = "No database URL given (use --database-url or set PUBSTREAM_DATABASE_URL)."
        raise click.UsageError(msg)
    schema_path = opts.schema_path or settings.schema_path
    if not schema_path:
        msg = "No schema given (use --schema or set PUBSTREAM_SCHEMA_PATH)."
        raise click.UsageError(msg)

    try:
        anyio.run(
            partial(run, mode, database_url=database_url, schema_path=schema_path, interval=interval, workers=workers)
        )
    except (SchemaError, StorageUnavailableError) as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


def _alembic_config(database_url: str | None):
    """Build an Alembic Config from the package's alembic.ini.

    Both alembic.ini and the alembic/ directory live inside the package,
    so this works whether running from source or from an installed package.
    An explicit *database_url* overrides the one from settings.
    """
    from pathlib import Path

    from alembic.config import Config

    ini_path = Path(__file__).parent / "alembic.ini"
    cfg = Config(str(ini_path))
    if database_url:
        cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


@main.group()
def db() -> None:
    """Database migration and management commands."""


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head).")
@click.pass_obj
def upgrade(opts: _Options, revision: str) -> None:
    """Run database migrations forward."""
    from alembic import command

    command.upgrade(_alembic_config(opts.database_url), revision)
    click.echo(f"Database upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", help="Target revision (default: -1, one step back).")
@click.pass_obj
def downgrade(opts: _Options, revision: str) -> None:
    """Roll back database migrations."""
    from alembic import command

    command.downgrade(_alembic_config(opts.database_url), revision)
    click.echo(f"Database downgraded to {revision}.")


@db.command()
@click.argument("message")
@click.pass_obj
def migrate(opts: _Options, message: str) -> None:
    """Autogenerate a migration from changes to the table models."""
    from alembic import command

    command.revision(_alembic_config(opts.database_url), message=message, autogenerate=True)
    click.echo(f"Migration generated: {message}")


@db.command()
@click.pass_obj
def current(opts: _Options) -> None:
    """Show current database revision."""
    from alembic import command

    command.current(_alembic_config(opts.database_url), verbose=True)


@db.command()
@click.pass_obj
def history(opts: _Options) -> None:
    """Show migration history."""
    from alembic import command

    command.history(_alembic_config(opts.database_url), verbose=True)


if __name__ == "__main__":
    main()
