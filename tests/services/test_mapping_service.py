"""Tests for MappingService — JSON payloads in, ServiceResult out."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from sample_records import Address, Order

from entitymap.config.logging import PACKAGE_LOGGER, configure_logging
from entitymap.config.settings import EntitymapSettings
from entitymap.domain.entity import Entity, Key, Value
from entitymap.infrastructure.store import InMemoryStore
from entitymap.mapping import decode
from entitymap.services.mapping import MappingService

ORDER = "sample_records:Order"


@pytest.fixture
def order_payload() -> dict[str, Any]:
    return {
        "id": "o-1",
        "customer": "Ada",
        "note": None,
        "item_count": 1,
        "total_cents": 150,
        "paid": True,
        "total": "1.50",
        "placed_at": "2024-03-01T09:30:00Z",
        "tags": ["rush"],
        "quantities": [1],
        "items": [
            {
                "sku": "sku-1",
                "quantity": 1,
                "unit_price": "1.50",
                "gift": False,
                "added_at": "2024-03-01T09:00:00Z",
            }
        ],
        "shipping": {"street": "1 Main St", "city": "Springfield"},
    }


class TestDescribe:
    def test_lists_fields_in_order(self, service: MappingService) -> None:
        result = service.describe("sample_records:Address")
        assert result.ok
        assert result.data["type"] == "sample_records:Address"
        names = [f["name"] for f in result.data["fields"]]
        assert names == ["street", "city", "postcode"]
        postcode = result.data["fields"][2]
        assert postcode["optional"] is True
        assert postcode["has_default"] is True

    def test_unknown_module(self, service: MappingService) -> None:
        result = service.describe("no_such_module:Thing")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "TYPE_NOT_FOUND"

    def test_unsupported_type(self, service: MappingService) -> None:
        result = service.describe("sample_records:WithFloat")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNSUPPORTED_TYPE"
        assert result.error.detail["field"] == "ratio"


class TestEncode:
    def test_produces_entity_document(
        self, service: MappingService, order_payload: dict[str, Any]
    ) -> None:
        result = service.encode(ORDER, order_payload)
        assert result.ok
        entity = result.data["entity"]
        assert entity["key"] == {"kind": "Order", "name": "o-1"}
        assert "note" not in entity["properties"]
        assert entity["properties"]["total"] == {"type": "decimal", "value": "1.50"}
        assert entity["properties"]["placed_at"] == {
            "type": "timestamp",
            "value": "2024-03-01T09:30:00Z",
        }

    def test_explicit_kind_and_identity(
        self, service: MappingService, order_payload: dict[str, Any]
    ) -> None:
        result = service.encode(ORDER, order_payload, identity_field="customer", kind="Sale")
        assert result.ok
        assert result.data["entity"]["key"] == {"kind": "Sale", "name": "Ada"}
        assert result.data["entity"]["properties"]["id"] == {"type": "text", "value": "o-1"}

    def test_invalid_payload(self, service: MappingService, order_payload: dict[str, Any]) -> None:
        del order_payload["customer"]
        result = service.encode(ORDER, order_payload)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_PAYLOAD"
        assert result.error.detail["errors"]

    def test_mapping_error_surfaces_code_and_field(
        self, service: MappingService, order_payload: dict[str, Any]
    ) -> None:
        order_payload["items"][0]["quantity"] = 2**31
        result = service.encode(ORDER, order_payload)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "NUMERIC_OVERFLOW"
        assert result.error.detail["field"] == "items[0].quantity"

    def test_unknown_identity_field(
        self, service: MappingService, order_payload: dict[str, Any]
    ) -> None:
        result = service.encode(ORDER, order_payload, identity_field="uuid")
        assert result.error is not None
        assert result.error.code == "UNKNOWN_FIELD"


class TestDecode:
    def test_entity_document_to_record(self, service: MappingService) -> None:
        entity = Entity(
            key=Key("Address", "a-1"),
            properties={"street": Value.text("1 Main St"), "city": Value.text("Springfield")},
        )
        result = service.decode("sample_records:Address", entity.to_dict(), identity_field="street")
        assert result.ok
        assert result.data["record"] == {
            "street": "a-1",
            "city": "Springfield",
            "postcode": None,
        }

    def test_decode_of_encoded_payload(
        self, service: MappingService, order_payload: dict[str, Any]
    ) -> None:
        encoded = service.encode(ORDER, order_payload)
        result = service.decode(ORDER, encoded.data["entity"])
        assert result.ok
        record = result.data["record"]
        assert record["id"] == "o-1"
        assert record["total"] == "1.50"
        assert record["items"][0]["sku"] == "sku-1"

    def test_missing_required_property(self, service: MappingService) -> None:
        doc = {"key": {"kind": "Address", "name": "x"}, "properties": {}}
        result = service.decode("sample_records:Address", doc, identity_field="street")
        assert result.error is not None
        assert result.error.code == "MISSING_REQUIRED_FIELD"
        assert result.error.detail["field"] == "city"

    def test_malformed_document(self, service: MappingService) -> None:
        doc = {"properties": {"city": {"type": "colour", "value": "red"}}}
        result = service.decode("sample_records:Address", doc)
        assert result.error is not None
        assert result.error.code == "INVALID_PAYLOAD"

    def test_key_kind_mismatch(self, service: MappingService) -> None:
        doc = {"key": {"kind": "Counter", "name": "seven"}, "properties": {}}
        result = service.decode("sample_records:Counter", doc)
        assert result.error is not None
        assert result.error.code == "KEY_TYPE_MISMATCH"

    def test_payload_not_matching_tag(self, service: MappingService) -> None:
        doc = {
            "key": {"kind": "Priced", "name": "a"},
            "properties": {"price": {"type": "decimal", "value": 12.34}},
        }
        result = service.decode("sample_records:Priced", doc)
        assert result.error is not None
        assert result.error.code == "PROPERTY_TYPE_MISMATCH"

    def test_key_identifier_of_wrong_form(self, service: MappingService) -> None:
        doc = {"key": {"kind": "Counter", "id": "7"}, "properties": {}}
        result = service.decode("sample_records:Counter", doc)
        assert result.error is not None
        assert result.error.code == "INVALID_KEY_TYPE"

    def test_validator_rejection(self, service: MappingService) -> None:
        doc = {
            "key": {"kind": "Bounded", "name": "b"},
            "properties": {"n": {"type": "integer", "value": -1}},
        }
        result = service.decode("sample_records:Bounded", doc)
        assert result.error is not None
        assert result.error.code == "PROPERTY_TYPE_MISMATCH"
        assert result.error.detail["field"] == "n"

    def test_undeclared_properties_become_warnings(self, service: MappingService) -> None:
        doc = {
            "key": {"kind": "Labelled", "name": "a"},
            "properties": {
                "label": {"type": "text", "value": "x"},
                "legacy": {"type": "boolean", "value": True},
            },
        }
        result = service.decode("sample_records:Labelled", doc)
        assert result.ok
        assert result.warnings == ["Ignored property 'legacy' not declared on Labelled"]


class TestRoundtrip:
    def test_stores_and_restores(
        self,
        service: MappingService,
        store: InMemoryStore,
        order_payload: dict[str, Any],
    ) -> None:
        result = service.roundtrip(ORDER, order_payload)
        assert result.ok, result.error
        assert result.data["key"] == {"kind": "Order", "name": "o-1"}
        stored = store.get(Key("Order", "o-1"))
        assert stored is not None
        restored = decode(stored, Order, "id")
        assert restored.total == Decimal("1.50")
        assert restored.placed_at == datetime(2024, 3, 1, 9, 30, tzinfo=UTC)
        assert restored.shipping == Address("1 Main St", "Springfield")

    def test_failure_leaves_store_empty(
        self,
        service: MappingService,
        store: InMemoryStore,
        order_payload: dict[str, Any],
    ) -> None:
        order_payload["quantities"] = [2**31]
        result = service.roundtrip(ORDER, order_payload)
        assert not result.ok
        assert len(store) == 0


class TestSettingsDefaults:
    def test_identity_field_and_kind_from_config(
        self, tmp_path: Any, _isolated_config: None, store: InMemoryStore
    ) -> None:
        (tmp_path / "entitymap.toml").write_text(
            '[mapping]\nidentity_field = "street"\ndefault_kind = "Place"\n'
        )
        service = MappingService(EntitymapSettings.from_cli(start=tmp_path), store=store)
        result = service.encode("sample_records:Address", {"street": "s", "city": "c"})
        assert result.ok
        assert result.data["entity"]["key"] == {"kind": "Place", "name": "s"}

    def test_store_created_lazily(self, settings: EntitymapSettings) -> None:
        service = MappingService(settings)
        assert isinstance(service.store, InMemoryStore)
        assert service.store is service.store


class TestOperationLogging:
    @pytest.fixture
    def log_stream(self) -> Iterator[io.StringIO]:
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        pkg_level = logging.getLogger(PACKAGE_LOGGER).level
        stream = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=stream)
        yield stream
        root.handlers = handlers
        root.setLevel(level)
        logging.getLogger(PACKAGE_LOGGER).setLevel(pkg_level)

    def test_records_carry_operation_context(
        self, service: MappingService, log_stream: io.StringIO
    ) -> None:
        doc = {
            "key": {"kind": "Address", "name": "s"},
            "properties": {
                "city": {"type": "text", "value": "c"},
                "country": {"type": "text", "value": "UK"},
            },
        }
        assert service.decode("sample_records:Address", doc, identity_field="street").ok

        records = [json.loads(line) for line in log_stream.getvalue().splitlines()]
        ignored = [r for r in records if r["event"].startswith("Ignoring properties")]
        assert ignored
        assert ignored[0]["op"] == "decode"
        assert ignored[0]["record_type"] == "sample_records:Address"
        assert records[-1]["event"].startswith("decode finished: ok")

    def test_failure_code_logged(self, service: MappingService, log_stream: io.StringIO) -> None:
        service.describe("sample_records:WithFloat")
        last = json.loads(log_stream.getvalue().splitlines()[-1])
        assert last["event"].startswith("describe finished: UNSUPPORTED_TYPE")
