"""Shared pytest fixtures for entitymap tests."""

from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from click.testing import CliRunner
from sample_records import Address, LineItem, Order

from entitymap.config.settings import EntitymapSettings
from entitymap.infrastructure.store import InMemoryStore
from entitymap.services.mapping import MappingService


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run from an empty temp directory with no config env overrides."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ENTITYMAP_CONFIG", raising=False)
    monkeypatch.delenv("ENTITYMAP_MAPPING__IDENTITY_FIELD", raising=False)
    monkeypatch.delenv("ENTITYMAP_MAPPING__DEFAULT_KIND", raising=False)


@pytest.fixture
def settings(tmp_path: Path, _isolated_config: None) -> EntitymapSettings:
    return EntitymapSettings.from_cli(start=tmp_path)


@pytest.fixture
def store() -> Generator[InMemoryStore]:
    """In-process store, emptied after each test."""
    s = InMemoryStore(project="test-project", namespace="test-namespace")
    try:
        yield s
    finally:
        s.clear()


@pytest.fixture
def service(settings: EntitymapSettings, store: InMemoryStore) -> MappingService:
    return MappingService(settings, store=store)


@pytest.fixture
def order() -> Order:
    """A fully populated order with no note."""
    when = datetime(2024, 3, 1, 9, 30, 15, 123456, tzinfo=UTC)
    return Order(
        id="my-id",
        customer="string-value",
        note=None,
        item_count=42,
        total_cents=1234,
        paid=False,
        total=Decimal("12.34"),
        placed_at=when,
        tags=["one", "two"],
        quantities=[1, 2],
        items=[
            LineItem("one", 1, Decimal("1.50"), True, when),
            LineItem("two", 2, Decimal("0.05"), False, when),
        ],
        shipping=Address(street="1 Main St", city="Springfield"),
    )
