"""Relational persistence: engine factory and table definitions."""

from pubstream.db.engine import create_engine, create_tables
from pubstream.db.tables import Base, EventRow

__all__ = ["Base", "EventRow", "create_engine", "create_tables"]
