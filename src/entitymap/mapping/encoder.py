"""Record -> Entity encoding.

``encode`` turns a record into a root entity: the identity field becomes
the key and every other field becomes a property.  Nested records become
embedded entities without a key, lists are encoded element-wise, and an
optional field holding None is omitted from the properties entirely.

Encoding is pure and all-or-nothing.
"""

from __future__ import annotations

from typing import Any

from entitymap.domain.coercion import check_integer_range, encode_scalar
from entitymap.domain.descriptors import FieldType, TypeDescriptor, resolve_type
from entitymap.domain.entity import Entity, Key, Value
from entitymap.domain.errors import (
    InvalidKeyTypeError,
    MissingRequiredFieldError,
    PropertyTypeMismatchError,
    UnknownFieldError,
)
from entitymap.domain.types import KEY_KINDS, SemanticKind


def encode(record: Any, identity_field: str, kind: str) -> Entity:
    """Encode *record* into a root entity keyed by its *identity_field*.

    Args:
        record: A dataclass or pydantic model instance.
        identity_field: Name of the field whose value becomes the key.
        kind: Entity kind for the key.

    Raises:
        UnknownFieldError: If the record type has no *identity_field*.
        InvalidKeyTypeError: If the identity value is not text or integer.
        MappingError: Any other coercion failure, naming the field.
    """
    descriptor = resolve_type(type(record))
    identity = descriptor.get_field(identity_field)
    if identity is None:
        msg = f"{descriptor.name} has no identity field '{identity_field}'"
        raise UnknownFieldError(
            msg, field=identity_field, expected=f"one of {descriptor.field_names()}"
        )
    if identity.type.required.kind not in KEY_KINDS:
        msg = (
            f"Identity field '{identity_field}' of {descriptor.name} is declared "
            f"{identity.type.describe()}; keys must be text or integer"
        )
        raise InvalidKeyTypeError(
            msg, field=identity_field, expected="str | int", actual=identity.type.describe()
        )

    identifier = getattr(record, identity_field)
    key_kind = identity.type.required.kind
    if key_kind is SemanticKind.TEXT:
        valid = isinstance(identifier, str)
    else:
        valid = isinstance(identifier, int) and not isinstance(identifier, bool)
    if not valid:
        msg = (
            f"Identity field '{identity_field}' of {descriptor.name} is declared {key_kind} "
            f"but holds {type(identifier).__name__}: {identifier!r}"
        )
        raise InvalidKeyTypeError(
            msg, field=identity_field, expected=str(key_kind), actual=type(identifier).__name__
        )
    if key_kind is not SemanticKind.TEXT:
        check_integer_range(key_kind, identifier, identity_field)

    key = Key(kind=kind, identifier=identifier)
    properties = _encode_properties(record, descriptor, skip=identity_field, prefix="")
    return Entity(key=key, properties=properties)


def encode_embedded(record: Any) -> Entity:
    """Encode *record* as an embedded entity (no key, all fields as properties)."""
    descriptor = resolve_type(type(record))
    return Entity(properties=_encode_properties(record, descriptor, skip=None, prefix=""))


def _encode_properties(
    record: Any,
    descriptor: TypeDescriptor,
    *,
    skip: str | None,
    prefix: str,
) -> dict[str, Value]:
    properties: dict[str, Value] = {}
    for field in descriptor.fields:
        if field.name == skip:
            continue
        path = f"{prefix}{field.name}"
        value = _encode_value(field.type, getattr(record, field.name), path)
        if value is not None:
            properties[field.name] = value
    return properties


def _encode_value(field_type: FieldType, value: Any, path: str) -> Value | None:
    """Encode one value; None means the property is absent."""
    if field_type.kind is SemanticKind.OPTIONAL:
        if value is None:
            return None
        return _encode_value(field_type.required, value, path)

    if value is None:
        raise MissingRequiredFieldError(path)

    match field_type.kind:
        case SemanticKind.NESTED:
            assert field_type.record is not None
            if not isinstance(value, field_type.record.record_type):
                msg = f"Field '{path}' expects {field_type.record.name}, got {type(value).__name__}"
                raise PropertyTypeMismatchError(
                    msg, field=path, expected=field_type.record.name, actual=type(value).__name__
                )
            nested = _encode_properties(value, field_type.record, skip=None, prefix=f"{path}.")
            return Value.entity(Entity(properties=nested))
        case SemanticKind.LIST:
            assert field_type.item is not None
            if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
                msg = f"Field '{path}' expects a list, got {type(value).__name__}"
                raise PropertyTypeMismatchError(
                    msg, field=path, expected="list", actual=type(value).__name__
                )
            items = []
            for index, item in enumerate(value):
                encoded = _encode_value(field_type.item, item, f"{path}[{index}]")
                assert encoded is not None
                items.append(encoded)
            return Value.list(items)
        case _:
            return encode_scalar(field_type.kind, value, path)
