"""Tests for price calculation and markup rules."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_item
from expiry_tracker.errors import RuleNotFoundError
from expiry_tracker.pricing import (
    MARGIN_LOSS,
    MARGIN_LOW,
    MARGIN_OK,
    add_rule,
    apply_pricing,
    calculate_price,
    margin_status,
    match_rule,
    quote,
    remove_rule,
    rules_by_supplier,
)
from expiry_tracker.schemas import PricingRule

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


def test_calculate_price_includes_vat_by_default():
    assert calculate_price(100, 20) == pytest.approx(100 * 1.11 / 0.8)
    assert calculate_price(100, 20, includes_vat=False) == pytest.approx(100 / 0.8)


def test_calculate_price_edge_cases():
    assert calculate_price(0, 20) == 0
    assert calculate_price(50, None) == 50
    assert calculate_price(50, 100) == 500
    assert calculate_price(50, 150) == 500


def test_margin_status():
    assert margin_status(100, 100) == MARGIN_LOSS  # 100 incl. VAT is ~90 before VAT
    assert margin_status(100, 104, includes_vat=False) == MARGIN_LOW
    assert margin_status(100, 150, includes_vat=False) == MARGIN_OK
    assert margin_status(0, 10) == MARGIN_OK


def test_match_rule_first_match_wins_and_blank_is_wildcard():
    item = make_item("A1", group="Dairy", brand="Alpro", supplier_description="Fresh Foods")
    rules = [
        PricingRule(id="bakery", category="Bakery", percentage=30),
        PricingRule(id="alpro", brand="Alpro", supplier="", percentage=25),
        PricingRule(id="any", percentage=10),
    ]

    assert match_rule(item, rules).id == "alpro"
    assert match_rule(make_item("B2", group="Frozen"), rules).id == "any"
    assert match_rule(make_item("C3"), rules[:1]) is None


def test_manual_percentage_overrides_rules():
    item = make_item("A1", cost_price=10.0)
    rules = [PricingRule(id="any", percentage=50)]

    price_quote = quote(item, rules, manual_percentage=0)

    assert price_quote.rule_id is None
    assert price_quote.new_price == pytest.approx(11.1)


def test_apply_pricing_records_history_for_changed_prices():
    items = [
        make_item("A1", cost_price=10.0, sale_price=5.0, group="Dairy"),
        make_item("B2", cost_price=0.0, sale_price=8.0, group="Dairy"),
        make_item("C3", cost_price=10.0, sale_price=12.0, group="Bakery"),
    ]
    rules = [PricingRule(id="dairy", category="Dairy", percentage=25)]

    updated, changed = apply_pricing(items, rules, now=NOW)

    assert changed == 1
    repriced = updated[0]
    assert repriced.sale_price == pytest.approx(10 * 1.11 / 0.75)
    assert repriced.pricing_history[0].rule_applied == "dairy"
    assert repriced.pricing_history[0].old_price == 5.0
    assert repriced.pricing_history[0].date == NOW
    assert updated[1] is items[1]  # no cost, never repriced
    assert updated[2] is items[2]  # no matching rule


def test_apply_pricing_manual_label():
    items = [make_item("A1", cost_price=10.0, sale_price=5.0)]

    updated, _ = apply_pricing(items, [], manual_percentages={"A1": 40}, now=NOW)

    assert updated[0].pricing_history[0].rule_applied == "Manual: 40%"


def test_rules_by_supplier_groups_and_sorts():
    rules = [
        PricingRule(supplier="Zeta", percentage=1),
        PricingRule(percentage=2),
        PricingRule(supplier="Acme", percentage=3),
        PricingRule(supplier="Zeta", percentage=4),
    ]

    grouped = rules_by_supplier(rules)

    assert list(grouped) == ["Acme", "Any Supplier", "Zeta"]
    assert [r.percentage for r in grouped["Zeta"]] == [1, 4]


def test_rule_label():
    rule = PricingRule(supplier="Acme", brand="Alpro", percentage=12.5)

    assert rule.label() == "Acme/*/*/Alpro @ 12.5%"


def test_added_rules_keep_earlier_rules_first():
    broad = PricingRule(percentage=10)
    specific = PricingRule(brand="Alpro", percentage=25)

    rules = add_rule(add_rule([], broad), specific)

    assert rules == [broad, specific]
    assert match_rule(make_item("A1", brand="Alpro"), rules) is broad
    with pytest.raises(ValueError):
        add_rule(rules, PricingRule(percentage=0))


def test_remove_rule():
    keep = PricingRule(percentage=10)
    drop = PricingRule(percentage=20)

    assert remove_rule([keep, drop], drop.id) == [keep]
    with pytest.raises(RuleNotFoundError):
        remove_rule([keep], "missing")
