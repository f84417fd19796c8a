"""Event and schema models."""

from pubstream.models.enums import FieldType, RunMode
from pubstream.models.event import (
    RESERVED_KEYS,
    Event,
    ExtraFields,
    FieldValue,
    MalformedEnvelopeError,
    ReservedFieldError,
    compute_event_id,
    new_event,
)
from pubstream.models.schema import EventSchema, EventTypeSchema, SchemaError

__all__ = [
    "RESERVED_KEYS",
    "Event",
    "EventSchema",
    "EventTypeSchema",
    "ExtraFields",
    "FieldType",
    "FieldValue",
    "MalformedEnvelopeError",
    "ReservedFieldError",
    "RunMode",
    "SchemaError",
    "compute_event_id",
    "new_event",
]
