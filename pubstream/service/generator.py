"""Schema-driven synthetic event generation."""

from __future__ import annotations

import random
import string
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pubstream.models.enums import FieldType
from pubstream.models.event import Event, ExtraFields, FieldValue, new_event

if TYPE_CHECKING:
    from pubstream.models.schema import EventSchema

TEXT_LENGTH = 16
_TEXT_ALPHABET = string.ascii_letters + string.digits

# The event time lives on the envelope; a schema column named "time" is never generated.
SKIPPED_FIELDS = frozenset({"time"})


def utcnow() -> datetime:
    return datetime.now(UTC)


class EventGenerator:
    """Builds random events that conform to an :class:`EventSchema`.

    Integer fields get a non-negative value up to the declared type's maximum;
    text fields get a short random alphanumeric string.
    """

    def __init__(
        self,
        schema: EventSchema,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._schema = schema
        self._rng = rng or random.Random()  # noqa: S311
        self._clock = clock

    @property
    def schema(self) -> EventSchema:
        return self._schema

    def pick_type(self) -> str:
        return self._rng.choice(self._schema.event_types)

    def random_value(self, field_type: FieldType) -> FieldValue:
        if field_type is FieldType.TEXT:
            return "".join(self._rng.choices(_TEXT_ALPHABET, k=TEXT_LENGTH))
        return self._rng.randint(0, field_type.max_value)

    def random_fields(self, event_type: str) -> ExtraFields:
        return {
            name: self.random_value(field_type)
            for name, field_type in self._schema.fields(event_type).items()
            if name not in SKIPPED_FIELDS
        }

    def generate(self, event_type: str | None = None) -> Event:
        """Generate one event stamped with the current UTC time.

        Picks a type uniformly at random unless *event_type* is given.
        """
        event_type = event_type or self.pick_type()
        return new_event(event_type, self._clock(), self.random_fields(event_type))
