"""Coercion rules between primitive field kinds and stored values.

Encode direction: a Python value of a primitive semantic kind becomes a
tagged :class:`Value`.  Decode direction is the inverse and is driven by
the *target* kind; the stored tag only decides whether the conversion is
possible.

INVARIANT: The declared field type is authoritative. A text field never
becomes a timestamp because its content happens to look like one, and a
timestamp read into a text field is rendered as RFC 3339 text.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from entitymap.domain.entity import Value, format_timestamp, parse_timestamp
from entitymap.domain.errors import (
    ElementTypeMismatchError,
    MalformedDecimalError,
    NumericOverflowError,
    PropertyTypeMismatchError,
)
from entitymap.domain.types import (
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    SemanticKind,
    ValueType,
)

_INT_RANGES: dict[SemanticKind, tuple[int, int]] = {
    SemanticKind.INT32: (INT32_MIN, INT32_MAX),
    SemanticKind.INT64: (INT64_MIN, INT64_MAX),
}

# Stored tags each primitive target accepts on decode.
ACCEPTED_TAGS: dict[SemanticKind, frozenset[ValueType]] = {
    SemanticKind.TEXT: frozenset({ValueType.TEXT, ValueType.DECIMAL, ValueType.TIMESTAMP}),
    SemanticKind.INT32: frozenset({ValueType.INTEGER}),
    SemanticKind.INT64: frozenset({ValueType.INTEGER}),
    SemanticKind.BOOLEAN: frozenset({ValueType.BOOLEAN}),
    SemanticKind.DECIMAL: frozenset({ValueType.DECIMAL, ValueType.TEXT}),
    SemanticKind.TIMESTAMP: frozenset({ValueType.TIMESTAMP, ValueType.TEXT}),
}


def _type_name(value: Any) -> str:
    return type(value).__name__


def check_integer_range(kind: SemanticKind, value: int, path: str) -> int:
    """Return *value* if it fits the width of *kind*, else raise."""
    low, high = _INT_RANGES[kind]
    if not low <= value <= high:
        msg = f"Value {value} of field '{path}' does not fit in {kind} [{low}, {high}]"
        raise NumericOverflowError(msg, field=path, expected=str(kind), actual=str(value))
    return value


def format_decimal(value: Decimal, path: str) -> str:
    """Plain-text rendering of a finite decimal, never in exponent notation."""
    if not value.is_finite():
        msg = f"Decimal field '{path}' holds a non-finite value: {value}"
        raise MalformedDecimalError(msg, field=path, expected="finite decimal", actual=str(value))
    return format(value, "f")


def parse_decimal(text: str, path: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        msg = f"Field '{path}' holds malformed decimal text: {text!r}"
        raise MalformedDecimalError(msg, field=path, expected="decimal text", actual=text) from exc
    if not value.is_finite():
        msg = f"Field '{path}' holds a non-finite decimal: {text!r}"
        raise MalformedDecimalError(msg, field=path, expected="finite decimal", actual=text)
    return value


def encode_scalar(kind: SemanticKind, value: Any, path: str) -> Value:
    """Encode a primitive *value* declared as *kind*.

    Raises:
        PropertyTypeMismatchError: If the runtime value does not match *kind*.
        NumericOverflowError: If an integer does not fit its declared width.
        MalformedDecimalError: If a decimal is NaN or infinite.
    """
    match kind:
        case SemanticKind.TEXT if isinstance(value, str):
            return Value.text(value)
        case SemanticKind.INT32 | SemanticKind.INT64 if isinstance(value, int) and not isinstance(
            value, bool
        ):
            return Value.integer(check_integer_range(kind, value, path))
        case SemanticKind.BOOLEAN if isinstance(value, bool):
            return Value.boolean(value)
        case SemanticKind.DECIMAL if isinstance(value, Decimal):
            return Value.decimal(format_decimal(value, path))
        case SemanticKind.TIMESTAMP if isinstance(value, datetime):
            return Value.timestamp(value)
    msg = f"Field '{path}' is declared {kind} but holds {_type_name(value)}: {value!r}"
    raise PropertyTypeMismatchError(msg, field=path, expected=str(kind), actual=_type_name(value))


def decode_scalar(kind: SemanticKind, stored: Value, path: str, *, element: bool = False) -> Any:
    """Decode *stored* into a Python value of primitive *kind*.

    ``element`` marks values read from inside a list, which report
    :class:`ElementTypeMismatchError` instead of the property-level error.
    """
    if stored.type not in ACCEPTED_TAGS[kind]:
        error_cls = ElementTypeMismatchError if element else PropertyTypeMismatchError
        msg = f"Field '{path}' is declared {kind} but the stored value is {stored.type}"
        raise error_cls(msg, field=path, expected=str(kind), actual=str(stored.type))

    raw = stored.value
    match kind:
        case SemanticKind.TEXT:
            if stored.type is ValueType.TIMESTAMP:
                return format_timestamp(raw)
            return raw
        case SemanticKind.INT32 | SemanticKind.INT64:
            return check_integer_range(kind, raw, path)
        case SemanticKind.BOOLEAN:
            return raw
        case SemanticKind.DECIMAL:
            return parse_decimal(raw, path)
        case SemanticKind.TIMESTAMP:
            if stored.type is ValueType.TIMESTAMP:
                return raw
            try:
                return parse_timestamp(raw)
            except ValueError as exc:
                error_cls = ElementTypeMismatchError if element else PropertyTypeMismatchError
                msg = f"Field '{path}' is declared timestamp but holds text {raw!r}"
                raise error_cls(msg, field=path, expected="timestamp", actual=raw) from exc
    msg = f"No coercion rule for primitive kind {kind}"
    raise PropertyTypeMismatchError(msg, field=path, expected=str(kind))
