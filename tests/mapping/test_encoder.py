"""Tests for record -> entity encoding."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sample_records import (
    Address,
    Counter,
    Customer,
    Labelled,
    Order,
    Priced,
    SmallCounter,
    Stamped,
    Tagged,
    WithFloat,
)

from entitymap.domain.entity import Entity, Key, Value
from entitymap.domain.errors import (
    InvalidKeyTypeError,
    MissingRequiredFieldError,
    NumericOverflowError,
    PropertyTypeMismatchError,
    UnknownFieldError,
    UnsupportedTypeError,
)
from entitymap.domain.types import ValueType
from entitymap.mapping import encode, encode_embedded


class TestKeys:
    def test_text_identity(self) -> None:
        entity = encode(Labelled(id="abc", label="x"), "id", "K")
        assert entity.key == Key(kind="K", identifier="abc")

    def test_int64_identity(self) -> None:
        entity = encode(Counter(id=42, value=1), "id", "K")
        assert entity.key == Key(kind="K", identifier=42)

    def test_int32_identity(self) -> None:
        entity = encode(SmallCounter(id=7, label="x"), "id", "K")
        assert entity.key is not None
        assert entity.key.id == 7

    def test_identity_field_not_a_property(self) -> None:
        entity = encode(Labelled(id="abc", label="x"), "id", "K")
        assert "id" not in entity
        assert list(entity) == ["label"]

    def test_any_field_can_be_identity(self) -> None:
        entity = encode(Labelled(id="abc", label="x"), "label", "K")
        assert entity.key == Key("K", "x")
        assert entity.get("id") == Value.text("abc")

    def test_unknown_identity_field(self) -> None:
        with pytest.raises(UnknownFieldError) as exc_info:
            encode(Labelled(id="abc", label="x"), "uuid", "K")
        assert exc_info.value.field == "uuid"

    def test_identity_of_non_key_type(self) -> None:
        with pytest.raises(InvalidKeyTypeError) as exc_info:
            encode(Stamped(id="a", at=datetime(2020, 1, 1, tzinfo=UTC)), "at", "K")
        assert exc_info.value.field == "at"

    def test_identity_holding_wrong_runtime_type(self) -> None:
        with pytest.raises(InvalidKeyTypeError):
            encode(Labelled(id=5, label="x"), "id", "K")  # type: ignore[arg-type]

    def test_int32_identity_overflow(self) -> None:
        with pytest.raises(NumericOverflowError):
            encode(SmallCounter(id=2**31, label="x"), "id", "K")


class TestProperties:
    def test_full_record(self, order: Order) -> None:
        entity = encode(order, "id", "Order")
        assert list(entity) == [
            "customer",
            "item_count",
            "total_cents",
            "paid",
            "total",
            "placed_at",
            "tags",
            "quantities",
            "items",
            "shipping",
        ]
        assert entity.get("customer") == Value.text("string-value")
        assert entity.get("item_count") == Value.integer(42)
        assert entity.get("total_cents") == Value.integer(1234)
        assert entity.get("paid") == Value.boolean(False)
        assert entity.get("total") == Value.decimal("12.34")
        assert entity.get("placed_at") == Value.timestamp(order.placed_at)

    def test_absent_optional_omitted(self, order: Order) -> None:
        entity = encode(order, "id", "Order")
        assert "note" not in entity

    def test_present_optional_encoded(self, order: Order) -> None:
        entity = encode(replace(order, note="leave at door"), "id", "Order")
        assert entity.get("note") == Value.text("leave at door")

    def test_nested_record_embedded_without_key(self, order: Order) -> None:
        shipping = encode(order, "id", "Order").get("shipping")
        assert shipping is not None
        assert shipping.type is ValueType.ENTITY
        assert shipping.value.key is None
        assert dict(shipping.value.properties) == {
            "street": Value.text("1 Main St"),
            "city": Value.text("Springfield"),
        }

    def test_list_of_primitives(self, order: Order) -> None:
        entity = encode(order, "id", "Order")
        assert entity.get("tags") == Value.list([Value.text("one"), Value.text("two")])
        assert entity.get("quantities") == Value.list([Value.integer(1), Value.integer(2)])

    def test_list_of_records_in_order(self, order: Order) -> None:
        items = encode(order, "id", "Order").get("items")
        assert items is not None
        skus = [item.value.get("sku") for item in items.value]
        assert skus == [Value.text("one"), Value.text("two")]
        assert items.value[0].value.get("unit_price") == Value.decimal("1.50")

    def test_empty_list(self) -> None:
        entity = encode(Tagged(id="a"), "id", "K")
        assert entity.get("tags") == Value.list([])
        assert entity.get("scores") == Value.list([])

    def test_pydantic_record(self) -> None:
        customer = Customer(
            email="a@example.com",
            name="Ada",
            joined=datetime(2021, 5, 1, tzinfo=UTC),
            nicknames=("ada",),
        )
        entity = encode(customer, "email", "Customer")
        assert entity.key == Key("Customer", "a@example.com")
        assert entity.get("loyalty_points") == Value.integer(0)
        assert "address" not in entity
        assert entity.get("nicknames") == Value.list([Value.text("ada")])

    def test_encode_embedded_keeps_every_field(self) -> None:
        entity = encode_embedded(Address(street="s", city="c", postcode="p"))
        assert entity.key is None
        assert list(entity) == ["street", "city", "postcode"]


class TestFailures:
    def test_unsupported_type(self) -> None:
        with pytest.raises(UnsupportedTypeError):
            encode(WithFloat(id="a", ratio=0.5), "id", "K")

    def test_nested_error_names_path(self, order: Order) -> None:
        bad_item = replace(order.items[1], quantity=2**31)
        with pytest.raises(NumericOverflowError) as exc_info:
            encode(replace(order, items=[order.items[0], bad_item]), "id", "Order")
        assert exc_info.value.field == "items[1].quantity"

    def test_required_none(self) -> None:
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            encode(Labelled(id="a", label=None), "id", "K")  # type: ignore[arg-type]
        assert exc_info.value.field == "label"

    def test_wrong_nested_type(self, order: Order) -> None:
        with pytest.raises(PropertyTypeMismatchError) as exc_info:
            encode(replace(order, shipping="elsewhere"), "id", "Order")  # type: ignore[arg-type]
        assert exc_info.value.field == "shipping"

    def test_string_is_not_a_list(self) -> None:
        with pytest.raises(PropertyTypeMismatchError):
            encode(Tagged(id="a", tags="abc"), "id", "K")  # type: ignore[arg-type]

    def test_decimal_field_rejects_float(self) -> None:
        with pytest.raises(PropertyTypeMismatchError):
            encode(Priced(id="a", price=12.34), "id", "K")  # type: ignore[arg-type]

    def test_result_is_entity(self) -> None:
        assert isinstance(encode(Labelled(id="a", label="b"), "id", "K"), Entity)


def test_decimal_fidelity() -> None:
    entity = encode(Priced(id="a", price=Decimal("12.34")), "id", "K")
    assert entity.get("price") == Value.decimal("12.34")
