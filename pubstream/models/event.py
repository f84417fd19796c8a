"""Event model: content-addressed identity and the flat envelope encoding.

An event's ``id`` is an md5 digest over::

    type (utf-8) || unix seconds (int64, little endian) || canonical JSON of extra_fields

Canonical JSON sorts keys and uses compact separators, so the same logical
event hashes to the same id in every process.  Sub-second precision of
``time`` is kept on the model but never reaches the digest.

On the wire an event is a flat object: ``id``, ``type`` and ``time`` sit next
to the extra fields instead of wrapping them::

    {"id": "5d41...", "type": "page_view", "time": "2024-05-01T12:00:00Z", "user_id": 42}
"""

from __future__ import annotations

import hashlib
import json
import math
import struct
from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator

RESERVED_KEYS = frozenset({"id", "type", "time"})

# Strict so JSON booleans and floats are rejected rather than coerced.
FieldValue = StrictInt | StrictStr
ExtraFields = dict[str, FieldValue]


class MalformedEnvelopeError(ValueError):
    """Raised when an envelope lacks a valid ``id``, ``type`` or ``time``, or carries a non-scalar field."""


class ReservedFieldError(ValueError):
    """Raised when extra fields use a key reserved for the envelope."""


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime.  Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def unix_seconds(value: datetime) -> int:
    """Whole seconds since the epoch, floored like Go's ``Time.Unix``."""
    return math.floor(ensure_utc(value).timestamp())


def canonical_json(extra_fields: Mapping[str, FieldValue] | None) -> bytes:
    return json.dumps(dict(extra_fields or {}), sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode()


def check_reserved(extra_fields: Mapping[str, Any]) -> None:
    clashes = RESERVED_KEYS.intersection(extra_fields)
    if clashes:
        msg = f"extra fields use reserved key(s): {', '.join(sorted(clashes))}"
        raise ReservedFieldError(msg)


def compute_event_id(event_type: str, time: datetime, extra_fields: Mapping[str, FieldValue] | None) -> str:
    digest = hashlib.md5(usedforsecurity=False)
    digest.update(event_type.encode())
    digest.update(struct.pack("<q", unix_seconds(time)))
    digest.update(canonical_json(extra_fields))
    return digest.hexdigest()


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class Event(BaseModel):
    """A single stream event.  Build new ones with :func:`new_event`."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = Field(min_length=1)
    time: datetime
    extra_fields: Mapping[str, FieldValue] = Field(default_factory=dict, validate_default=True)

    @field_validator("time")
    @classmethod
    def _normalise_time(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("extra_fields")
    @classmethod
    def _freeze_fields(cls, value: Mapping[str, FieldValue]) -> Mapping[str, FieldValue]:
        check_reserved(value)
        return MappingProxyType(dict(value))

    def content_id(self) -> str:
        """Recompute the id from the event's content."""
        return compute_event_id(self.type, self.time, self.extra_fields)

    # -- Envelope --------------------------------------------------------------

    def to_envelope(self) -> dict[str, Any]:
        envelope: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "time": self.time.isoformat().replace("+00:00", "Z"),
        }
        envelope.update(self.extra_fields)
        return envelope

    def to_json(self) -> str:
        return json.dumps(self.to_envelope(), ensure_ascii=False)

    @classmethod
    def from_envelope(cls, data: Mapping[str, Any]) -> Event:
        """Decode a flat envelope.

        Raises ``MalformedEnvelopeError`` if ``time`` is missing or not an
        RFC 3339 timestamp, or if ``type``/``id`` are missing or not strings.
        Every other key becomes an extra field.
        """
        if not isinstance(data, Mapping):
            msg = f"envelope must be an object, got {type(data).__name__}"
            raise MalformedEnvelopeError(msg)

        payload = dict(data)
        when = _parse_time(payload.pop("time", None))

        event_type = payload.pop("type", None)
        if not isinstance(event_type, str):
            msg = "envelope 'type' is missing or not a string"
            raise MalformedEnvelopeError(msg)

        event_id = payload.pop("id", None)
        if not isinstance(event_id, str):
            msg = "envelope 'id' is missing or not a string"
            raise MalformedEnvelopeError(msg)

        try:
            return cls(id=event_id, type=event_type, time=when, extra_fields=payload)
        except ValidationError as exc:
            raise MalformedEnvelopeError(str(exc)) from exc

    @classmethod
    def from_json(cls, raw: str | bytes) -> Event:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"envelope is not valid JSON: {exc}"
            raise MalformedEnvelopeError(msg) from exc
        return cls.from_envelope(data)


def _parse_time(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str):
        msg = "envelope 'time' is missing or not a string"
        raise MalformedEnvelopeError(msg)
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        msg = f"envelope 'time' is not an RFC 3339 timestamp: {raw!r}"
        raise MalformedEnvelopeError(msg) from exc
    if parsed.tzinfo is None:
        msg = f"envelope 'time' has no UTC offset: {raw!r}"
        raise MalformedEnvelopeError(msg)
    return parsed


def new_event(event_type: str, time: datetime, extra_fields: Mapping[str, FieldValue] | None = None) -> Event:
    """Build an event and derive its content id.

    Raises ``ReservedFieldError`` if *extra_fields* uses ``id``, ``type`` or
    ``time`` as a key.
    """
    fields = dict(extra_fields or {})
    check_reserved(fields)
    when = ensure_utc(time)
    return Event(
        id=compute_event_id(event_type, when, fields),
        type=event_type,
        time=when,
        extra_fields=fields,
    )
