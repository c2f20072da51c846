"""Entity -> Record decoding.

The target type's descriptor drives every conversion: the identity field
is read from the entity key, all other fields from the properties, and the
record is rebuilt by calling its constructor with keyword arguments in
declared order.

Missing properties resolve as follows:
- optional field: ``None``
- field with a declared default: the constructor default applies
- anything else: :class:`MissingRequiredFieldError`
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from entitymap.domain.coercion import check_integer_range, decode_scalar
from entitymap.domain.descriptors import FieldType, TypeDescriptor, resolve_type
from entitymap.domain.entity import Entity, Value
from entitymap.domain.errors import (
    ElementTypeMismatchError,
    KeyTypeMismatchError,
    MissingRequiredFieldError,
    PropertyTypeMismatchError,
    UnknownFieldError,
)
from entitymap.domain.types import SemanticKind, ValueType

logger = logging.getLogger(__name__)

R = TypeVar("R")


def decode(entity: Entity, target_type: type[R], identity_field: str) -> R:
    """Rebuild a *target_type* record from a root *entity*.

    Raises:
        UnknownFieldError: If *target_type* has no *identity_field*.
        KeyTypeMismatchError: If the entity key is missing or cannot satisfy
            the identity field's declared type.
        MappingError: Any other coercion failure, naming the field.
    """
    descriptor = resolve_type(target_type)
    identity = descriptor.get_field(identity_field)
    if identity is None:
        msg = f"{descriptor.name} has no identity field '{identity_field}'"
        raise UnknownFieldError(
            msg, field=identity_field, expected=f"one of {descriptor.field_names()}"
        )
    identifier = _decode_identifier(entity, identity.type, identity_field)
    return _build(entity, descriptor, prefix="", identity=(identity_field, identifier))


def decode_embedded(entity: Entity, target_type: type[R]) -> R:
    """Rebuild a *target_type* record from an embedded (keyless) *entity*."""
    return _build(entity, resolve_type(target_type), prefix="")


def undeclared_properties(entity: Entity, target_type: type) -> list[str]:
    """Dotted paths of stored properties that decoding *target_type* ignores.

    Nested records are searched; elements of record lists are not.
    """
    return _undeclared(entity, resolve_type(target_type), prefix="")


def _undeclared(entity: Entity, descriptor: TypeDescriptor, prefix: str) -> list[str]:
    found: list[str] = []
    for name, stored in entity.properties.items():
        field = descriptor.get_field(name)
        if field is None:
            found.append(f"{prefix}{name}")
            continue
        field_type = field.type.required
        if field_type.record is not None and stored.type is ValueType.ENTITY:
            found.extend(_undeclared(stored.value, field_type.record, f"{prefix}{name}."))
    return found


def _decode_identifier(entity: Entity, field_type: FieldType, name: str) -> str | int:
    key = entity.key
    declared = field_type.required.kind
    if key is None:
        msg = f"Entity has no key to read identity field '{name}' from"
        raise KeyTypeMismatchError(msg, field=name, expected=str(declared), actual="no key")

    identifier = key.identifier
    if declared is SemanticKind.TEXT and isinstance(identifier, str):
        return identifier
    if declared in (SemanticKind.INT32, SemanticKind.INT64) and isinstance(identifier, int):
        return check_integer_range(declared, identifier, name)

    actual = "name" if isinstance(identifier, str) else "id"
    msg = (
        f"Identity field '{name}' is declared {field_type.describe()} "
        f"but the key holds {actual} {identifier!r}"
    )
    raise KeyTypeMismatchError(msg, field=name, expected=str(declared), actual=actual)


def _build(
    entity: Entity,
    descriptor: TypeDescriptor,
    *,
    prefix: str,
    identity: tuple[str, Any] | None = None,
) -> Any:
    kwargs: dict[str, Any] = {}
    for field in descriptor.fields:
        path = f"{prefix}{field.name}"
        if identity is not None and field.name == identity[0]:
            kwargs[field.name] = identity[1]
            continue
        stored = entity.get(field.name)
        if stored is None:
            if field.optional:
                kwargs[field.name] = None
            elif not field.has_default:
                raise MissingRequiredFieldError(path, record=descriptor.name)
            continue
        kwargs[field.name] = _decode_value(field.type, stored, path)

    known = set(descriptor.field_names())
    extra = [name for name in entity if name not in known]
    if extra:
        logger.debug("Ignoring properties not declared on %s: %s", descriptor.name, extra)

    return _construct(descriptor, kwargs, prefix)


def _construct(descriptor: TypeDescriptor, kwargs: dict[str, Any], prefix: str) -> Any:
    """Call the record constructor, turning its rejections into mapping errors.

    Pydantic models are validated by field name so aliased fields accept
    the attribute names the encoder writes.
    """
    record_type = descriptor.record_type
    path = prefix.rstrip(".") or descriptor.name
    try:
        if issubclass(record_type, BaseModel):
            return record_type.model_validate(kwargs, by_name=True)
        return record_type(**kwargs)
    except ValidationError as exc:
        raise _rejected(descriptor, exc, prefix) from exc
    except TypeError as exc:
        raise MissingRequiredFieldError(path, record=descriptor.name) from exc
    except ValueError as exc:
        msg = f"{descriptor.name} rejected the decoded values at '{path}': {exc}"
        raise PropertyTypeMismatchError(
            msg, field=path, expected=f"values accepted by {descriptor.name}", actual=str(exc)
        ) from exc


def _rejected(
    descriptor: TypeDescriptor, exc: ValidationError, prefix: str
) -> MissingRequiredFieldError | PropertyTypeMismatchError:
    first = exc.errors(include_url=False)[0]
    names: dict[str, str] = {}
    if issubclass(descriptor.record_type, BaseModel):
        names = {
            info.alias: name
            for name, info in descriptor.record_type.model_fields.items()
            if info.alias
        }
    loc = [names.get(str(part), str(part)) for part in first["loc"]]
    path = (prefix + ".".join(loc)) if loc else (prefix.rstrip(".") or descriptor.name)
    if first["type"] == "missing":
        return MissingRequiredFieldError(path, record=descriptor.name)
    msg = f"Field '{path}' of {descriptor.name} was rejected: {first['msg']}"
    return PropertyTypeMismatchError(
        msg,
        field=path,
        expected=f"a value accepted by {descriptor.name}",
        actual=repr(first.get("input")),
    )


def _decode_value(
    field_type: FieldType, stored: Value, path: str, *, element: bool = False
) -> Any:
    field_type = field_type.required
    match field_type.kind:
        case SemanticKind.NESTED:
            assert field_type.record is not None
            if stored.type is not ValueType.ENTITY:
                raise _mismatch(path, field_type.record.name, stored, element)
            return _build(stored.value, field_type.record, prefix=f"{path}.")
        case SemanticKind.LIST:
            assert field_type.item is not None and field_type.container is not None
            if stored.type is not ValueType.LIST:
                raise _mismatch(path, field_type.describe(), stored, element)
            items = [
                _decode_value(field_type.item, item, f"{path}[{index}]", element=True)
                for index, item in enumerate(stored.value)
            ]
            return field_type.container(items)
        case _:
            return decode_scalar(field_type.kind, stored, path, element=element)


def _mismatch(path: str, expected: str, stored: Value, element: bool) -> PropertyTypeMismatchError:
    error_cls = ElementTypeMismatchError if element else PropertyTypeMismatchError
    msg = f"Field '{path}' is declared {expected} but the stored value is {stored.type}"
    return error_cls(msg, field=path, expected=expected, actual=str(stored.type))
