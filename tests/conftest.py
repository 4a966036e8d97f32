"""Shared fixtures for expiry tracker tests."""

from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    # Ensure tests can import `expiry_tracker` and `main` without installation.
    sys.path.insert(0, project_root_str)

from expiry_tracker.schemas import ExpiryEntry, Item  # noqa: E402

TODAY = date(2026, 1, 15)


def make_lot(days: int, quantity: int, added_at: str | None = None) -> ExpiryEntry:
    """A lot expiring `days` after TODAY."""
    return ExpiryEntry(
        date=TODAY + timedelta(days=days),
        quantity=quantity,
        added_at=added_at or f"2026-01-01T00:00:{abs(days) % 60:02d}.{quantity:06d}",
    )


def make_item(code: str = "A1", lots: list[ExpiryEntry] | None = None, **fields) -> Item:
    fields.setdefault("description", f"Item {code}")
    return Item(id=code, expiry_entries=lots or [], **fields)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "inventory-db.json"


@pytest.fixture
def catalog() -> list[Item]:
    return [
        make_item("A1", [make_lot(10, 5), make_lot(40, 8)], group="Dairy", brand="Alpro"),
        make_item("B2", [make_lot(-3, 2)], group="Bakery"),
        make_item("C3", [], group="Dairy"),
    ]
