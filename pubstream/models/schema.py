"""Event schema: event-type name -> field name -> declared column type.

The schema document is JSON::

    {
      "page_view": {"type_mapping": {"time": "bigint", "user_id": "int", "page_id": "bigint"}},
      "purchase":  {"type_mapping": {"time": "bigint", "amount": "int"}}
    }

It is loaded once at startup and never mutated afterwards.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, ValidationError

from pubstream.models.enums import FieldType


class SchemaError(ValueError):
    """Raised when a schema document is missing, unreadable or malformed."""


class EventTypeSchema(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type_mapping: dict[str, FieldType]


class EventSchema:
    """Read-only view over the per-type field mappings."""

    def __init__(self, types: Mapping[str, Mapping[str, FieldType]]) -> None:
        if not types:
            msg = "schema declares no event types"
            raise SchemaError(msg)
        self._types = MappingProxyType({name: MappingProxyType(dict(fields)) for name, fields in types.items()})
        self._names = tuple(self._types)

    @property
    def event_types(self) -> tuple[str, ...]:
        return self._names

    def fields(self, event_type: str) -> Mapping[str, FieldType]:
        """Return the field mapping for *event_type*.  Raises ``KeyError`` if unknown."""
        return self._types[event_type]

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._types

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"EventSchema(types={list(self._names)!r})"

    # -- Loading ---------------------------------------------------------------

    @classmethod
    def from_dict(cls, raw: object) -> EventSchema:
        if not isinstance(raw, Mapping):
            msg = "schema document must be a JSON object"
            raise SchemaError(msg)

        types: dict[str, Mapping[str, FieldType]] = {}
        for name, entry in raw.items():
            try:
                parsed = EventTypeSchema.model_validate(entry)
            except ValidationError as exc:
                msg = f"invalid schema entry for event type {name!r}: {exc}"
                raise SchemaError(msg) from exc
            types[name] = parsed.type_mapping
        return cls(types)

    @classmethod
    def load(cls, path: str | Path) -> EventSchema:
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            msg = f"failed to read schema {path}: {exc}"
            raise SchemaError(msg) from exc
        except json.JSONDecodeError as exc:
            msg = f"failed to parse schema {path}: {exc}"
            raise SchemaError(msg) from exc
        return cls.from_dict(raw)
