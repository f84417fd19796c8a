"""Event store implementations."""

from pubstream.store.base import (
    EventStore,
    InsertFailedError,
    QueryFailedError,
    StorageUnavailableError,
    StoreError,
)
from pubstream.store.memory import InMemoryEventStore
from pubstream.store.sql import SqlEventStore

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "InsertFailedError",
    "QueryFailedError",
    "SqlEventStore",
    "StorageUnavailableError",
    "StoreError",
]
