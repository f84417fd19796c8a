"""SQLAlchemy ORM models.

Single source of truth for the database schema; Alembic reads
``Base.metadata`` to autogenerate migration scripts.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TimestampTZ = DateTime(timezone=True)

# JSONB on PostgreSQL, plain JSON text elsewhere.
ExtraFieldsJSON = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class EventRow(Base):
    """One stored event.  The primary key on ``id`` is what makes inserts idempotent."""

    __tablename__ = "events"
    __table_args__ = (Index("ix_events_type_time", "type", "time"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    time: Mapped[datetime] = mapped_column(TimestampTZ, nullable=False)
    extra_fields: Mapped[dict] = mapped_column(ExtraFieldsJSON, nullable=False)
