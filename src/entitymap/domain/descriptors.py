"""Type descriptors — the field-level shape of a record type.

A record type is a dataclass or a pydantic ``BaseModel``. Resolving one
walks its annotations once and produces a frozen :class:`TypeDescriptor`
that drives both encoding and decoding.

INVARIANT: Descriptors are immutable and built at most once per type.
The process-wide :class:`TypeRegistry` memoizes them behind a lock, so
concurrent first use converges on a single instance.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import types
import typing
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Union

from pydantic import BaseModel

from entitymap.domain.errors import UnsupportedTypeError
from entitymap.domain.types import IntegerWidth, SemanticKind

logger = logging.getLogger(__name__)

_PRIMITIVES: dict[Any, SemanticKind] = {
    str: SemanticKind.TEXT,
    bool: SemanticKind.BOOLEAN,
    int: SemanticKind.INT64,
    Decimal: SemanticKind.DECIMAL,
    datetime: SemanticKind.TIMESTAMP,
}

_SEQUENCE_ORIGINS = (list, Sequence)

_WIDTH_KINDS: dict[int, SemanticKind] = {32: SemanticKind.INT32, 64: SemanticKind.INT64}


@dataclass(frozen=True)
class FieldType:
    """Semantic type of a field.

    ``item`` is set for ``LIST`` and ``OPTIONAL``; ``record`` for ``NESTED``;
    ``container`` is the Python sequence type a ``LIST`` decodes into.
    """

    kind: SemanticKind
    item: FieldType | None = None
    record: TypeDescriptor | None = None
    container: type | None = None

    @property
    def required(self) -> FieldType:
        """This type with one level of optionality stripped."""
        if self.kind is SemanticKind.OPTIONAL and self.item is not None:
            return self.item
        return self

    def describe(self) -> str:
        match self.kind:
            case SemanticKind.OPTIONAL:
                return f"optional[{self.required.describe()}]"
            case SemanticKind.LIST:
                assert self.item is not None
                return f"list[{self.item.describe()}]"
            case SemanticKind.NESTED:
                assert self.record is not None
                return self.record.name
            case _:
                return str(self.kind)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": str(self.kind)}
        if self.item is not None:
            result["item"] = self.item.to_dict()
        if self.record is not None:
            result["record"] = self.record.to_dict()
        return result


@dataclass(frozen=True)
class FieldDescriptor:
    """One constructor field of a record type."""

    name: str
    type: FieldType
    has_default: bool = False

    @property
    def optional(self) -> bool:
        return self.type.kind is SemanticKind.OPTIONAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.describe(),
            "optional": self.optional,
            "has_default": self.has_default,
            "shape": self.type.to_dict(),
        }


@dataclass(frozen=True)
class TypeDescriptor:
    """Ordered field descriptors for one record type."""

    record_type: type
    fields: tuple[FieldDescriptor, ...]

    @property
    def name(self) -> str:
        return self.record_type.__qualname__

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldDescriptor | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": f"{self.record_type.__module__}:{self.name}",
            "fields": [f.to_dict() for f in self.fields],
        }


def is_record_type(tp: Any) -> bool:
    """True for dataclass and pydantic model classes."""
    if not isinstance(tp, type):
        return False
    return dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel)


def _record_fields(record_type: type) -> list[tuple[str, Any, bool]]:
    """Constructor fields as ``(name, annotation, has_default)``, in declared order.

    Pydantic strips a top-level ``Annotated`` into ``FieldInfo.metadata``;
    it is rebuilt here so width markers survive.
    """
    if dataclasses.is_dataclass(record_type):
        hints = typing.get_type_hints(record_type, include_extras=True)
        return [
            (
                f.name,
                hints[f.name],
                f.default is not dataclasses.MISSING
                or f.default_factory is not dataclasses.MISSING,
            )
            for f in dataclasses.fields(record_type)
            if f.init
        ]
    assert issubclass(record_type, BaseModel)
    result: list[tuple[str, Any, bool]] = []
    for name, info in record_type.model_fields.items():
        hint = info.annotation
        if info.metadata:
            hint = Annotated[(hint, *info.metadata)]
        result.append((name, hint, not info.is_required()))
    return result


class TypeRegistry:
    """Memoizing, thread-safe resolver of record types to descriptors."""

    def __init__(self) -> None:
        self._descriptors: dict[type, TypeDescriptor] = {}
        self._lock = threading.RLock()
        self._resolving: list[type] = []

    def __contains__(self, record_type: object) -> bool:
        return record_type in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()

    def resolve(self, record_type: type) -> TypeDescriptor:
        """Return the descriptor for *record_type*, building it on first use.

        Raises:
            UnsupportedTypeError: If the type, or any field reachable from it,
                cannot be mapped. Failed resolutions are not cached.
        """
        cached = self._descriptors.get(record_type)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._descriptors.get(record_type)
            if cached is not None:
                return cached
            descriptor = self._build(record_type)
            self._descriptors[record_type] = descriptor
            logger.debug(
                "Resolved type descriptor for %s (%d fields)",
                descriptor.name,
                len(descriptor.fields),
            )
            return descriptor

    def _build(self, record_type: type) -> TypeDescriptor:
        if not is_record_type(record_type):
            msg = f"{record_type!r} is not a record type (expected a dataclass or pydantic model)"
            raise UnsupportedTypeError(
                msg, expected="dataclass | BaseModel", actual=repr(record_type)
            )
        if record_type in self._resolving:
            chain = " -> ".join(t.__qualname__ for t in [*self._resolving, record_type])
            msg = f"Cyclic record type definition is not supported: {chain}"
            raise UnsupportedTypeError(msg, expected="acyclic record graph", actual=chain)

        owner = record_type.__qualname__
        try:
            declared = _record_fields(record_type)
        except (NameError, TypeError) as exc:
            msg = f"Cannot evaluate annotations of {owner}: {exc}"
            raise UnsupportedTypeError(msg, actual=owner) from exc

        self._resolving.append(record_type)
        try:
            fields = tuple(
                FieldDescriptor(
                    name=name,
                    type=self._classify(hint, owner, name),
                    has_default=has_default,
                )
                for name, hint, has_default in declared
            )
        finally:
            self._resolving.pop()
        return TypeDescriptor(record_type=record_type, fields=fields)

    def _classify(self, hint: Any, owner: str, name: str) -> FieldType:
        origin = typing.get_origin(hint)
        args = typing.get_args(hint)

        if origin is Annotated:
            base, *metadata = args
            widths = [m.bits for m in metadata if isinstance(m, IntegerWidth)]
            if not widths:
                return self._classify(base, owner, name)
            inner = self._classify(base, owner, name)
            if inner.required.kind is not SemanticKind.INT64:
                raise _unsupported(owner, name, hint, "integer width on a non-integer type")
            sized = _WIDTH_KINDS.get(widths[0])
            if sized is None:
                raise _unsupported(owner, name, hint, f"unsupported integer width {widths[0]}")
            if inner.kind is SemanticKind.OPTIONAL:
                return FieldType(SemanticKind.OPTIONAL, item=FieldType(sized))
            return FieldType(sized)

        if origin is Union or origin is types.UnionType:
            members = [a for a in args if a is not type(None)]
            if len(members) != 1 or len(args) != 2:
                raise _unsupported(owner, name, hint, "unions other than T | None")
            inner = self._classify(members[0], owner, name)
            if inner.kind is SemanticKind.OPTIONAL:
                raise _unsupported(owner, name, hint, "nested optionals")
            return FieldType(SemanticKind.OPTIONAL, item=inner)

        if origin in _SEQUENCE_ORIGINS or origin is tuple:
            if origin is tuple:
                if len(args) != 2 or args[1] is not Ellipsis:
                    raise _unsupported(owner, name, hint, "fixed-size tuples")
                container: type = tuple
            else:
                if len(args) != 1:
                    raise _unsupported(owner, name, hint, "untyped sequences")
                container = list
            item = self._classify(args[0], owner, f"{name}[]")
            if item.kind is SemanticKind.OPTIONAL:
                raise _unsupported(owner, name, hint, "lists with optional elements")
            return FieldType(SemanticKind.LIST, item=item, container=container)

        kind = _PRIMITIVES.get(hint)
        if kind is not None:
            return FieldType(kind)

        if is_record_type(hint):
            return FieldType(SemanticKind.NESTED, record=self.resolve(hint))

        raise _unsupported(owner, name, hint, "no mapping for this type")


def _unsupported(owner: str, name: str, hint: Any, reason: str) -> UnsupportedTypeError:
    rendered = getattr(hint, "__qualname__", None) or repr(hint)
    msg = f"Field '{name}' of {owner} has unsupported type {rendered}: {reason}"
    return UnsupportedTypeError(msg, field=name, actual=rendered)


registry = TypeRegistry()


def resolve_type(record_type: type) -> TypeDescriptor:
    """Resolve *record_type* through the process-wide registry."""
    return registry.resolve(record_type)
