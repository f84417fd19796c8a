"""In-process event store.

Keeps events in a dict keyed by id.  Used by the tests; nothing
survives a restart.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from loguru import logger

from pubstream.models.event import ensure_utc

if TYPE_CHECKING:
    from datetime import datetime

    from pubstream.models.event import Event


class InMemoryEventStore:
    """Dict-backed implementation of the EventStore protocol."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._events: dict[str, Event] = {}
        self._rng = rng or random.Random()  # noqa: S311

    async def insert_event(self, event: Event) -> None:
        if event.id in self._events:
            logger.debug("Event {} already stored, insert skipped", event.id)
            return
        self._events[event.id] = event

    async def get_event(self, event_type: str, start: datetime, end: datetime) -> Event | None:
        start, end = ensure_utc(start), ensure_utc(end)
        matches = [e for e in self._events.values() if e.type == event_type and start <= e.time <= end]
        if not matches:
            return None
        return self._rng.choice(matches)

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        return None

    def all_events(self) -> list[Event]:
        """Return a snapshot of every stored event."""
        return list(self._events.values())

    def __len__(self) -> int:
        return len(self._events)
