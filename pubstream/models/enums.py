"""Shared enumerations."""

from __future__ import annotations

from enum import StrEnum


class FieldType(StrEnum):
    """Column type tags accepted in a schema ``type_mapping``."""

    SMALLINT = "smallint"
    INT = "int"
    BIGINT = "bigint"
    TEXT = "text"

    @property
    def max_value(self) -> int | None:
        """Largest non-negative value of an integer type; ``None`` for text."""
        return _INT_MAX.get(self)


_INT_MAX = {
    FieldType.SMALLINT: 2**15 - 1,
    FieldType.INT: 2**31 - 1,
    FieldType.BIGINT: 2**63 - 1,
}


class RunMode(StrEnum):
    WRITER = "writer"
    READER = "reader"
