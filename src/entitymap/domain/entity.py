"""Generic entity model — Key, Value, Entity.

This is the schema-less representation exchanged with the store client.
A root entity carries a key; an embedded entity (a nested record or a
list element) does not.

All three types are immutable once constructed.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from entitymap.domain.errors import (
    InvalidKeyTypeError,
    NumericOverflowError,
    PropertyTypeMismatchError,
)
from entitymap.domain.types import INT64_MAX, INT64_MIN, ValueType

# Payload form each tag holds once constructed.
_PAYLOAD_FORMS: dict[ValueType, str] = {
    ValueType.TEXT: "str",
    ValueType.DECIMAL: "decimal text (str)",
    ValueType.INTEGER: "int",
    ValueType.BOOLEAN: "bool",
    ValueType.TIMESTAMP: "aware datetime",
    ValueType.LIST: "tuple of Value",
    ValueType.ENTITY: "Entity",
}


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as RFC 3339 text in UTC (``...Z``)."""
    text = value.astimezone(UTC).isoformat()
    return text.removesuffix("+00:00") + "Z"


def parse_timestamp(text: str) -> datetime:
    """Parse ISO 8601 / RFC 3339 text into an aware UTC datetime.

    Raises:
        ValueError: If *text* is not a timestamp.
    """
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class Key:
    """Identity of a root entity: a kind plus a text or integer identifier."""

    kind: str
    identifier: str | int

    def __post_init__(self) -> None:
        if not isinstance(self.kind, str) or not self.kind:
            msg = f"Key kind must be a non-empty string, got {self.kind!r}"
            raise InvalidKeyTypeError(msg, expected="str", actual=type(self.kind).__name__)
        ident = self.identifier
        if isinstance(ident, bool) or not isinstance(ident, (str, int)):
            msg = (
                f"Key identifier must be text or integer, "
                f"got {type(ident).__name__}: {ident!r}"
            )
            raise InvalidKeyTypeError(msg, expected="str | int", actual=type(ident).__name__)
        if isinstance(ident, int) and not INT64_MIN <= ident <= INT64_MAX:
            msg = f"Key identifier {ident} does not fit in a 64-bit integer"
            raise NumericOverflowError(msg, expected="int64", actual=str(ident))

    @property
    def name(self) -> str | None:
        """Identifier in text form, or None for an integer key."""
        return self.identifier if isinstance(self.identifier, str) else None

    @property
    def id(self) -> int | None:
        """Identifier in integer form, or None for a text key."""
        return self.identifier if isinstance(self.identifier, int) else None

    def to_dict(self) -> dict[str, Any]:
        if self.name is not None:
            return {"kind": self.kind, "name": self.name}
        return {"kind": self.kind, "id": self.id}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Key:
        if "name" in data and "id" in data:
            msg = "Key document must carry either 'name' or 'id', not both"
            raise InvalidKeyTypeError(msg, expected="name | id", actual="both")
        if "name" in data:
            form, identifier = "name", data["name"]
            valid = isinstance(identifier, str)
            expected = "str"
        else:
            form, identifier = "id", data.get("id")
            valid = isinstance(identifier, int) and not isinstance(identifier, bool)
            expected = "int"
        if not valid:
            actual = type(identifier).__name__
            msg = f"Key '{form}' must be {expected}, got {actual}: {identifier!r}"
            raise InvalidKeyTypeError(msg, expected=expected, actual=actual)
        return cls(kind=data.get("kind", ""), identifier=identifier)


@dataclass(frozen=True)
class Value:
    """A tagged property value.

    The factory classmethods normalize their input; the constructor only
    checks that the payload has the form its tag requires.

    Raises:
        PropertyTypeMismatchError: If the payload does not match the tag.
    """

    type: ValueType
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ValueType(self.type))
        if not _payload_matches(self.type, self.value):
            raise _payload_mismatch(self.type, self.value)

    @classmethod
    def text(cls, value: str) -> Value:
        return cls(ValueType.TEXT, value)

    @classmethod
    def integer(cls, value: int) -> Value:
        return cls(ValueType.INTEGER, value)

    @classmethod
    def boolean(cls, value: bool) -> Value:
        return cls(ValueType.BOOLEAN, value)

    @classmethod
    def timestamp(cls, value: datetime) -> Value:
        if not isinstance(value, datetime):
            raise _payload_mismatch(ValueType.TIMESTAMP, value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return cls(ValueType.TIMESTAMP, value.astimezone(UTC))

    @classmethod
    def decimal(cls, text: str) -> Value:
        """Decimal stored as its plain-text rendering."""
        return cls(ValueType.DECIMAL, text)

    @classmethod
    def list(cls, values: Iterable[Value]) -> Value:
        return cls(ValueType.LIST, tuple(values))

    @classmethod
    def entity(cls, value: Entity) -> Value:
        if value.key is not None:
            msg = "Embedded entities must not carry a key"
            raise InvalidKeyTypeError(msg, expected="no key", actual=repr(value.key))
        return cls(ValueType.ENTITY, value)

    def to_dict(self) -> dict[str, Any]:
        match self.type:
            case ValueType.TIMESTAMP:
                payload: Any = format_timestamp(self.value)
            case ValueType.LIST:
                payload = [item.to_dict() for item in self.value]
            case ValueType.ENTITY:
                payload = self.value.to_dict()
            case _:
                payload = self.value
        return {"type": str(self.type), "value": payload}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Value:
        value_type = ValueType(data["type"])
        raw = data["value"]
        match value_type:
            case ValueType.TIMESTAMP if isinstance(raw, str):
                return cls.timestamp(parse_timestamp(raw))
            case ValueType.LIST if isinstance(raw, list):
                return cls.list(cls.from_dict(item) for item in raw)
            case ValueType.ENTITY if isinstance(raw, Mapping):
                return cls.entity(Entity.from_dict(raw))
            case ValueType.TIMESTAMP | ValueType.LIST | ValueType.ENTITY:
                raise _payload_mismatch(value_type, raw)
            case _:
                return cls(value_type, raw)


def _payload_matches(value_type: ValueType, payload: Any) -> bool:
    match value_type:
        case ValueType.TEXT | ValueType.DECIMAL:
            return isinstance(payload, str)
        case ValueType.INTEGER:
            return isinstance(payload, int) and not isinstance(payload, bool)
        case ValueType.BOOLEAN:
            return isinstance(payload, bool)
        case ValueType.TIMESTAMP:
            return isinstance(payload, datetime) and payload.tzinfo is not None
        case ValueType.LIST:
            return isinstance(payload, tuple) and all(isinstance(v, Value) for v in payload)
        case ValueType.ENTITY:
            return isinstance(payload, Entity)
    return False


def _payload_mismatch(value_type: ValueType, payload: Any) -> PropertyTypeMismatchError:
    expected = _PAYLOAD_FORMS[value_type]
    actual = type(payload).__name__
    msg = f"A {value_type} value must hold {expected}, got {actual}: {payload!r}"
    return PropertyTypeMismatchError(msg, expected=expected, actual=actual)


@dataclass(frozen=True)
class Entity:
    """Key plus an ordered, read-only mapping of property name to Value."""

    key: Key | None = None
    properties: Mapping[str, Value] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    @property
    def is_embedded(self) -> bool:
        return self.key is None

    def __contains__(self, name: object) -> bool:
        return name in self.properties

    def __iter__(self) -> Iterator[str]:
        return iter(self.properties)

    def get(self, name: str) -> Value | None:
        return self.properties.get(name)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.key is not None:
            result["key"] = self.key.to_dict()
        result["properties"] = {name: value.to_dict() for name, value in self.properties.items()}
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Entity:
        key_data = data.get("key")
        key = Key.from_dict(key_data) if key_data is not None else None
        properties = {
            name: Value.from_dict(value) for name, value in data.get("properties", {}).items()
        }
        return cls(key=key, properties=properties)
