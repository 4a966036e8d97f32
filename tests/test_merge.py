"""Tests for merging master-list rows into the catalog."""

from __future__ import annotations

import pytest

from conftest import make_item, make_lot
from expiry_tracker.errors import NoValidRowsError
from expiry_tracker.merge import map_master_row, merge_master_rows, net_cost
from expiry_tracker.schemas import PricingHistoryEntry


def _row(code, **overrides):
    row = {
        "Itemcode": code,
        "Description": "Oat Milk 1L",
        "Group Desc": "Dairy",
        "Sub Group Desc": "Plant Milk",
        "Brand Desc": "Alpro",
        "Kind Desc": "Fresh Foods Ltd",
        "Unitpri": "20",
        "UnitDisc %": "10",
        "Saleprice": "29.5",
        "Totqty": "12",
    }
    row.update(overrides)
    return row


def test_map_master_row_stores_net_cost():
    mapped = map_master_row(_row(" 1001 "))

    assert mapped["id"] == "1001"
    assert mapped["cost_price"] == pytest.approx(18.0, abs=1e-9)
    assert mapped["discount"] == 10
    assert mapped["sale_price"] == 29.5
    assert mapped["quantity"] == 12


def test_map_master_row_treats_bad_numbers_as_zero():
    mapped = map_master_row(_row("1001", Unitpri="", **{"UnitDisc %": "abc"}, Saleprice=None, Totqty="x"))

    assert mapped["cost_price"] == 0
    assert mapped["discount"] == 0
    assert mapped["sale_price"] == 0
    assert mapped["quantity"] == 0


def test_map_master_row_without_code_is_dropped():
    assert map_master_row(_row("   ")) is None
    assert map_master_row(_row(None)) is None


@pytest.mark.parametrize("discount", [0, 0.5, 12.5, 33.3, 50, 99.99, 100])
def test_net_cost_formula(discount):
    mapped = map_master_row(_row("1001", Unitpri="37.40", **{"UnitDisc %": str(discount)}))

    assert mapped["cost_price"] == pytest.approx(37.40 * (1 - discount / 100), abs=1e-9)
    assert net_cost(37.40, discount) == pytest.approx(mapped["cost_price"], abs=1e-9)


def test_new_item_is_created_flagged_with_staged_quantity():
    result = merge_master_rows([], [_row("1001")])

    assert (result.new_count, result.updated_count) == (1, 0)
    created = result.items[0]
    assert created.expiry_entries == []
    assert created.notes == ""
    assert created.pricing_history == []
    assert created.is_update is True
    assert created.pending_stock_qty == 12


def test_existing_item_is_merged_field_by_field():
    history = [PricingHistoryEntry(new_price=25.0, rule_applied="r1")]
    existing = make_item(
        "1001",
        [make_lot(30, 4)],
        notes="keep me",
        pricing_history=history,
        description="Old name",
        sale_price=25.0,
    )

    result = merge_master_rows([existing], [_row("1001", Description="New name")])

    assert (result.new_count, result.updated_count) == (0, 1)
    merged = result.items[0]
    assert merged.description == "New name"
    assert merged.sale_price == 29.5
    assert merged.cost_price == pytest.approx(18.0)
    assert merged.expiry_entries == existing.expiry_entries
    assert merged.notes == "keep me"
    assert merged.pricing_history == history
    assert merged.is_update is True
    assert merged.pending_stock_qty == 12


def test_same_row_twice_yields_one_item():
    first = merge_master_rows([], [_row("1001")])
    second = merge_master_rows(first.items, [_row("1001")])

    assert len(second.items) == 1
    assert (second.new_count, second.updated_count) == (0, 1)

    within_one_file = merge_master_rows([], [_row("1001"), _row("1001")])
    assert len(within_one_file.items) == 1
    assert (within_one_file.new_count, within_one_file.updated_count) == (1, 1)


def test_existing_order_kept_and_new_items_appended():
    existing = [make_item("B"), make_item("A"), make_item("C")]

    result = merge_master_rows(existing, [_row("Z"), _row("A"), _row("D")])

    assert [item.id for item in result.items] == ["B", "A", "C", "Z", "D"]


def test_rows_without_codes_are_dropped_silently():
    result = merge_master_rows([], [_row(""), _row("1001"), {"Description": "no code"}])

    assert [item.id for item in result.items] == ["1001"]
    assert result.new_count == 1


def test_file_without_any_codes_is_a_batch_failure():
    with pytest.raises(NoValidRowsError):
        merge_master_rows([make_item("A")], [_row(""), {}])
