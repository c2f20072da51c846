"""Semantic field kinds and stored value kinds.

``SemanticKind`` classifies a record field; ``ValueType`` tags a stored
property value. The two are deliberately separate: decoding is driven by
the field's semantic kind, never by the stored tag alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class SemanticKind(StrEnum):
    """Shape of a record field as seen by the mapper."""

    TEXT = "text"
    INT32 = "int32"
    INT64 = "int64"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    TIMESTAMP = "timestamp"
    NESTED = "nested"
    LIST = "list"
    OPTIONAL = "optional"


PRIMITIVE_KINDS = frozenset(
    {
        SemanticKind.TEXT,
        SemanticKind.INT32,
        SemanticKind.INT64,
        SemanticKind.BOOLEAN,
        SemanticKind.DECIMAL,
        SemanticKind.TIMESTAMP,
    }
)

KEY_KINDS = frozenset({SemanticKind.TEXT, SemanticKind.INT32, SemanticKind.INT64})


class ValueType(StrEnum):
    """Storage tag of a property value in a generic entity."""

    TEXT = "text"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    DECIMAL = "decimal"
    LIST = "list"
    ENTITY = "entity"


@dataclass(frozen=True)
class IntegerWidth:
    """``Annotated`` marker narrowing an ``int`` field to a fixed bit width."""

    bits: int


Int32 = Annotated[int, IntegerWidth(32)]
Int64 = Annotated[int, IntegerWidth(64)]
