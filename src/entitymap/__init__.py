"""entitymap — map typed records to and from generic store entities."""

from __future__ import annotations

from entitymap.domain.descriptors import (
    FieldDescriptor,
    FieldType,
    TypeDescriptor,
    TypeRegistry,
    resolve_type,
)
from entitymap.domain.entity import Entity, Key, Value
from entitymap.domain.errors import (
    ElementTypeMismatchError,
    InvalidKeyTypeError,
    KeyTypeMismatchError,
    MalformedDecimalError,
    MappingError,
    MissingRequiredFieldError,
    NumericOverflowError,
    PropertyTypeMismatchError,
    UnknownFieldError,
    UnsupportedTypeError,
)
from entitymap.domain.types import Int32, Int64, IntegerWidth, SemanticKind, ValueType
from entitymap.mapping import decode, decode_embedded, encode, encode_embedded

__version__ = "0.1.0"

__all__ = [
    "ElementTypeMismatchError",
    "Entity",
    "FieldDescriptor",
    "FieldType",
    "Int32",
    "Int64",
    "IntegerWidth",
    "InvalidKeyTypeError",
    "Key",
    "KeyTypeMismatchError",
    "MalformedDecimalError",
    "MappingError",
    "MissingRequiredFieldError",
    "NumericOverflowError",
    "PropertyTypeMismatchError",
    "SemanticKind",
    "TypeDescriptor",
    "TypeRegistry",
    "UnknownFieldError",
    "UnsupportedTypeError",
    "Value",
    "ValueType",
    "__version__",
    "decode",
    "decode_embedded",
    "encode",
    "encode_embedded",
    "resolve_type",
]
