"""MappingService — describe, encode, decode and round-trip records as JSON.

Records are addressed by import path (``"pkg.module:ClassName"``).  JSON
payloads are validated into record instances with pydantic's
``TypeAdapter``, which accepts both dataclasses and pydantic models.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from entitymap.domain.descriptors import resolve_type
from entitymap.domain.entity import Entity
from entitymap.domain.errors import MappingError
from entitymap.infrastructure.store import EntityStore, create_store
from entitymap.mapping import decode, encode, undeclared_properties
from entitymap.services._helpers import load_record_type, logged_operation
from entitymap.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from entitymap.config.settings import EntitymapSettings

logger = logging.getLogger(__name__)


class _OperationFailed(Exception):
    """Carries a ready-made failure result out of a helper."""

    def __init__(self, result: ServiceResult) -> None:
        super().__init__(result.error.message if result.error else result.op)
        self.result = result


class MappingService:
    """JSON-facing operations over the encoder and decoder.

    Usage::

        service = MappingService(settings)
        result = service.encode("shop.models:Order", {"id": "o-1", ...})
        if result.ok:
            entity_doc = result.data["entity"]
    """

    def __init__(self, settings: EntitymapSettings, store: EntityStore | None = None) -> None:
        self._settings = settings
        self._store = store

    @property
    def store(self) -> EntityStore:
        """The store client (created lazily from ``[store]`` settings)."""
        if self._store is None:
            self._store = create_store(self._settings.store)
        return self._store

    # ── operations ───────────────────────────────────────────────────

    @logged_operation("describe")
    def describe(self, type_path: str) -> ServiceResult:
        op = "describe"
        try:
            record_type = self._load(op, type_path)
            descriptor = resolve_type(record_type)
        except _OperationFailed as failed:
            return failed.result
        except MappingError as exc:
            return _mapping_failure(op, exc)
        return ServiceResult(ok=True, op=op, data=descriptor.to_dict())

    @logged_operation("encode")
    def encode(
        self,
        type_path: str,
        payload: dict[str, Any],
        *,
        identity_field: str | None = None,
        kind: str | None = None,
    ) -> ServiceResult:
        op = "encode"
        try:
            record_type = self._load(op, type_path)
            record = _validate(op, record_type, payload)
            entity = encode(
                record,
                self._identity_field(identity_field),
                self._kind(kind, record_type),
            )
        except _OperationFailed as failed:
            return failed.result
        except MappingError as exc:
            return _mapping_failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"entity": entity.to_dict()})

    @logged_operation("decode")
    def decode(
        self,
        type_path: str,
        entity_doc: dict[str, Any],
        *,
        identity_field: str | None = None,
    ) -> ServiceResult:
        op = "decode"
        try:
            record_type = self._load(op, type_path)
            entity = _parse_entity(op, entity_doc)
            record = decode(entity, record_type, self._identity_field(identity_field))
        except _OperationFailed as failed:
            return failed.result
        except MappingError as exc:
            return _mapping_failure(op, exc)
        warnings = [
            f"Ignored property '{path}' not declared on {record_type.__qualname__}"
            for path in undeclared_properties(entity, record_type)
        ]
        return ServiceResult(
            ok=True, op=op, data={"record": _dump(record_type, record)}, warnings=warnings
        )

    @logged_operation("roundtrip")
    def roundtrip(
        self,
        type_path: str,
        payload: dict[str, Any],
        *,
        identity_field: str | None = None,
        kind: str | None = None,
    ) -> ServiceResult:
        """Encode, store, fetch and decode a record, then compare the result."""
        op = "roundtrip"
        field = self._identity_field(identity_field)
        try:
            record_type = self._load(op, type_path)
            record = _validate(op, record_type, payload)
            entity = encode(record, field, self._kind(kind, record_type))
            key = self.store.put(entity)
            fetched = self.store.get(key)
            if fetched is None:
                return ServiceResult.failure(op, "NOT_FOUND", f"{key} vanished from the store")
            restored = decode(fetched, record_type, field)
        except _OperationFailed as failed:
            return failed.result
        except MappingError as exc:
            return _mapping_failure(op, exc)

        data = {
            "key": key.to_dict(),
            "entity": fetched.to_dict(),
            "record": _dump(record_type, restored),
        }
        if restored != record:
            logger.warning("Round trip of %s changed the record", key)
            return ServiceResult(
                ok=False,
                op=op,
                data=data,
                error=ServiceError(
                    code="ROUNDTRIP_MISMATCH",
                    message="Decoded record differs from the original",
                    detail={"original": _dump(record_type, record)},
                ),
            )
        return ServiceResult(ok=True, op=op, data=data)

    # ── helpers ──────────────────────────────────────────────────────

    def _identity_field(self, identity_field: str | None) -> str:
        return identity_field or self._settings.mapping.identity_field

    def _kind(self, kind: str | None, record_type: type) -> str:
        return kind or self._settings.mapping.default_kind or record_type.__name__

    @staticmethod
    def _load(op: str, type_path: str) -> type:
        try:
            return load_record_type(type_path)
        except LookupError as exc:
            raise _OperationFailed(ServiceResult.failure(op, "TYPE_NOT_FOUND", str(exc))) from exc


def _mapping_failure(op: str, exc: MappingError) -> ServiceResult:
    logger.debug("%s failed: %s", op, exc.message)
    return ServiceResult(ok=False, op=op, error=ServiceError.from_mapping_error(exc))


def _validate(op: str, record_type: type, payload: dict[str, Any]) -> Any:
    try:
        return TypeAdapter(record_type).validate_python(payload)
    except ValidationError as exc:
        raise _OperationFailed(
            ServiceResult.failure(
                op,
                "INVALID_PAYLOAD",
                f"Payload is not a valid {record_type.__qualname__}",
                errors=exc.errors(include_url=False, include_context=False),
            )
        ) from exc


def _parse_entity(op: str, entity_doc: dict[str, Any]) -> Entity:
    """Parse an entity document.

    A payload that does not match its tag raises :class:`MappingError`,
    which the caller reports under the error's own code.
    """
    try:
        return Entity.from_dict(entity_doc)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise _OperationFailed(
            ServiceResult.failure(op, "INVALID_PAYLOAD", f"Malformed entity document: {exc}")
        ) from exc


def _dump(record_type: type, record: Any) -> Any:
    return TypeAdapter(record_type).dump_python(record, mode="json")
