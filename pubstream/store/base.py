"""Event store interface.

The writer and the reader pool only ever talk to storage through this
protocol.  Any backend that can insert idempotently on the event id and draw
a uniformly random row from a filtered set can stand behind it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from pubstream.models.event import Event


class StoreError(RuntimeError):
    """Base class for event store failures."""


class StorageUnavailableError(StoreError):
    """Raised when the backend cannot be configured or reached at startup."""


class InsertFailedError(StoreError):
    """Raised when an insert fails for a reason other than a duplicate id."""


class QueryFailedError(StoreError):
    """Raised when a sampling query fails."""


@runtime_checkable
class EventStore(Protocol):
    """Async protocol for persisting and sampling events."""

    async def insert_event(self, event: Event) -> None:
        """Insert *event*.  A row with the same id already present makes this a no-op.

        Raises ``InsertFailedError`` on any other failure.
        """
        ...

    async def get_event(self, event_type: str, start: datetime, end: datetime) -> Event | None:
        """Return one event of *event_type* with ``start <= time <= end``, chosen uniformly at random.

        Returns ``None`` when nothing matches.  Raises ``QueryFailedError`` on failure.
        """
        ...

    async def ping(self) -> None:
        """Check connectivity.  Raises ``StorageUnavailableError`` if unreachable."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...
