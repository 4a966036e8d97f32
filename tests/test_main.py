"""Tests for the command-line entry point."""

from __future__ import annotations

import argparse

import pytest

import main
from conftest import make_item, make_lot
from expiry_tracker import data_handler
from expiry_tracker.schemas import InventoryDocument, PricingRule


@pytest.fixture
def store(db_path):
    document = InventoryDocument(
        items=[make_item("A1", [make_lot(10, 5)], is_update=True, pending_stock_qty=4)]
    )
    data_handler.save_document(document, db_path)
    return db_path


def test_undo_with_nothing_stored_is_not_an_error(store):
    assert main.main(["--db", str(store), "undo"]) == 0
    assert data_handler.load_document(store).items[0].total_quantity == 5


def test_add_expiry_dates_pending_stock(store):
    assert main.main(["--db", str(store), "add-expiry", "A1:2026-09-30"]) == 0

    stored = data_handler.load_document(store).items[0]
    assert stored.total_quantity == 9
    assert stored.pending_stock_qty == 0
    assert stored.is_update is False


def test_clear_pending(store):
    assert main.main(["--db", str(store), "clear-pending"]) == 0
    assert data_handler.load_document(store).items[0].is_update is False


def test_mark_read_unknown_notification_fails(store):
    assert main.main(["--db", str(store), "mark-read", "missing"]) == 1


def test_parse_entry_rejects_bad_input():
    with pytest.raises(argparse.ArgumentTypeError):
        main._parse_entry("A1")
    with pytest.raises(argparse.ArgumentTypeError):
        main._parse_entry("A1:not-a-date")

    entry = main._parse_entry("A1:2026-03-01:4")
    assert (entry.item_id, entry.quantity) == ("A1", 4)


def test_rules_lists_saved_rules(db_path, caplog):
    document = InventoryDocument(pricing_rules=[PricingRule(supplier="Acme", brand="Alpro", percentage=12.5)])
    data_handler.save_document(document, db_path)

    with caplog.at_level("INFO", logger="expiry_tracker"):
        assert main.main(["--db", str(db_path), "rules"]) == 0

    assert "--- Acme ---" in caplog.text
    assert "- / - / Alpro: 12.5%" in caplog.text


def test_settings_command_edits_reminder_settings(store):
    argv = ["--db", str(store), "settings", "--days", "14", "--add-email", "buyer@example.com"]

    assert main.main(argv) == 0

    saved = data_handler.load_document(store).settings
    assert saved.reminder_days == 14
    assert saved.recipient_emails == ["buyer@example.com"]


def test_settings_command_rejects_zero_days(store):
    with pytest.raises(SystemExit):
        main.main(["--db", str(store), "settings", "--days", "0"])


def test_add_and_remove_rule(store):
    assert main.main(["--db", str(store), "add-rule", "--percent", "15", "--brand", "Alpro"]) == 0
    rules = data_handler.load_document(store).pricing_rules
    assert [(r.brand, r.percentage, r.supplier) for r in rules] == [("Alpro", 15.0, None)]

    assert main.main(["--db", str(store), "remove-rule", rules[0].id]) == 0
    assert data_handler.load_document(store).pricing_rules == []
    assert main.main(["--db", str(store), "remove-rule", "missing"]) == 1


def test_lot_and_notes_editing(store):
    added_at = data_handler.load_document(store).items[0].expiry_entries[0].added_at

    assert main.main(["--db", str(store), "set-lot", "A1", added_at, "3"]) == 0
    assert main.main(["--db", str(store), "set-notes", "A1", "top shelf"]) == 0
    item = data_handler.load_document(store).items[0]
    assert item.expiry_entries[0].quantity == 3
    assert item.notes == "top shelf"

    assert main.main(["--db", str(store), "remove-lot", "A1", added_at]) == 0
    assert data_handler.load_document(store).items[0].expiry_entries == []
    assert main.main(["--db", str(store), "remove-lot", "A1", added_at]) == 1
    assert main.main(["--db", str(store), "set-notes", "ZZ", "x"]) == 1
