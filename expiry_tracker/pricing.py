"""
Sale-price calculation from net cost and markup rules.

Prices are computed as cost * VAT / (1 - percentage / 100), i.e. the percentage
is the margin on the VAT-inclusive price. Rules are matched first-wins in the
order they were saved; a blank selector on a rule matches anything.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from . import settings
from .errors import RuleNotFoundError
from .schemas import Item, PricingHistoryEntry, PricingRule, utc_now

logger = logging.getLogger(__name__)

MARGIN_LOSS = "margin-loss"
MARGIN_LOW = "margin-low"
MARGIN_OK = "margin-ok"


def calculate_price(
    cost: Optional[float],
    percentage: Optional[float],
    includes_vat: bool = True,
    vat_factor: float = settings.VAT_FACTOR,
) -> Optional[float]:
    if not cost or percentage is None:
        return cost
    margin = 1 - percentage / 100
    if margin <= 0:
        # A 100%+ margin has no finite price; cap it instead.
        return cost * 10
    price_with_vat = cost * vat_factor / margin
    return price_with_vat if includes_vat else price_with_vat / vat_factor


def margin_status(
    cost: Optional[float],
    price: Optional[float],
    includes_vat: bool = True,
    vat_factor: float = settings.VAT_FACTOR,
) -> str:
    if not cost or not price:
        return MARGIN_OK
    price_before_vat = price / vat_factor if includes_vat else price
    if price_before_vat < cost:
        return MARGIN_LOSS
    margin = (price_before_vat - cost) / price_before_vat * 100
    if margin <= settings.LOW_MARGIN_PERCENT:
        return MARGIN_LOW
    return MARGIN_OK


def _selector_matches(selector: Optional[str], value: str) -> bool:
    return not selector or selector == value


def rule_matches(rule: PricingRule, item: Item) -> bool:
    return (
        _selector_matches(rule.brand, item.brand)
        and _selector_matches(rule.sub_category, item.sub_group)
        and _selector_matches(rule.category, item.group)
        and _selector_matches(rule.supplier, item.supplier_description)
    )


def match_rule(item: Item, rules: list[PricingRule]) -> Optional[PricingRule]:
    return next((rule for rule in rules if rule_matches(rule, item)), None)


def add_rule(rules: list[PricingRule], rule: PricingRule) -> list[PricingRule]:
    """Appends `rule` after the existing ones, so earlier rules keep precedence."""
    if not rule.percentage:
        raise ValueError("A pricing rule needs a non-zero percentage.")
    logger.info(f"Added pricing rule {rule.label()}")
    return [*rules, rule]


def remove_rule(rules: list[PricingRule], rule_id: str) -> list[PricingRule]:
    remaining = [rule for rule in rules if rule.id != rule_id]
    if len(remaining) == len(rules):
        raise RuleNotFoundError(rule_id)
    return remaining


@dataclass(frozen=True)
class PriceQuote:
    item_id: str
    cost_price: float
    old_price: float
    new_price: float
    rule_id: Optional[str]
    percentage: Optional[float]
    includes_vat: bool
    status: str

    @property
    def changed(self) -> bool:
        return self.new_price != self.old_price


def quote(
    item: Item,
    rules: list[PricingRule],
    manual_percentage: Optional[float] = None,
    includes_vat: bool = True,
) -> PriceQuote:
    """Resolves a new price for `item`. A manual percentage overrides every rule."""
    rule = None if manual_percentage is not None else match_rule(item, rules)
    percentage = manual_percentage if rule is None else rule.percentage
    new_price = calculate_price(item.cost_price, percentage, includes_vat)
    if new_price is None:
        new_price = item.sale_price
    return PriceQuote(
        item_id=item.id,
        cost_price=item.cost_price,
        old_price=item.sale_price,
        new_price=new_price,
        rule_id=rule.id if rule else None,
        percentage=percentage,
        includes_vat=includes_vat,
        status=margin_status(item.cost_price, new_price, includes_vat),
    )


def apply_pricing(
    items: list[Item],
    rules: list[PricingRule],
    manual_percentages: Optional[dict[str, float]] = None,
    includes_vat: bool = True,
    now: Optional[datetime] = None,
) -> tuple[list[Item], int]:
    """
    Re-prices the catalog. Items whose price changes get the new sale price and
    a history entry at the front of their pricing history. Items matched by no
    rule and no manual percentage, or with no cost, keep their price.
    Returns the updated items and the number of items repriced.
    """
    manual_percentages = manual_percentages or {}
    stamp = now or utc_now()
    updated: list[Item] = []
    changed = 0

    for item in items:
        manual = manual_percentages.get(item.id)
        price_quote = quote(item, rules, manual, includes_vat)
        # Items without a known cost are never repriced.
        if not item.cost_price or price_quote.percentage is None or not price_quote.changed:
            updated.append(item)
            continue

        entry = PricingHistoryEntry(
            date=stamp,
            old_price=price_quote.old_price,
            new_price=price_quote.new_price,
            rule_applied=price_quote.rule_id or f"Manual: {manual:g}%",
            includes_vat=includes_vat,
        )
        updated.append(
            item.model_copy(
                update={
                    "sale_price": price_quote.new_price,
                    "pricing_history": [entry, *item.pricing_history],
                }
            )
        )
        changed += 1
        if price_quote.status == MARGIN_LOSS:
            logger.warning(f"  > ⚠️  {item.id} is priced below cost ({price_quote.new_price:.2f} < {item.cost_price:.2f}).")

    return updated, changed


def rules_by_supplier(rules: list[PricingRule]) -> dict[str, list[PricingRule]]:
    """Groups rules for the pricing report, suppliers sorted by name."""
    grouped: defaultdict[str, list[PricingRule]] = defaultdict(list)
    for rule in rules:
        grouped[rule.supplier or "Any Supplier"].append(rule)
    return {supplier: grouped[supplier] for supplier in sorted(grouped)}
