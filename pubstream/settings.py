"""Service configuration loaded from PUBSTREAM_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StreamSettings(BaseSettings):
    """pubstream settings.

    All fields are read from environment variables with the ``PUBSTREAM_``
    prefix.  For example, ``PUBSTREAM_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    Command-line flags take precedence over anything configured here.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUBSTREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per log record instead of the console format."""

    # -- Infrastructure --------------------------------------------------------
    database_url: str | None = None
    """SQLAlchemy async URL, e.g. ``postgresql+psycopg://...`` or ``sqlite+aiosqlite:///events.db``."""

    schema_path: str | None = None
    """Path to the JSON event schema document."""

    # -- Writer ----------------------------------------------------------------
    write_interval: float = Field(default=5.0, gt=0)

    # -- Reader ----------------------------------------------------------------
    read_interval: float = Field(default=1.0, gt=0)
    reader_workers: int = Field(default=10, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> StreamSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return StreamSettings()
