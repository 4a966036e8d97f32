"""Merging a point-of-sale master list into the item catalog."""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Iterable

from . import settings
from .errors import NoValidRowsError
from .schemas import Item
from .utils import clean_text, parse_int, parse_number

logger = logging.getLogger(__name__)

# Catalog fields a master row overwrites on an existing item.
MERGED_FIELDS = (
    "description",
    "group",
    "sub_group",
    "brand",
    "supplier_description",
    "cost_price",
    "discount",
    "sale_price",
)


@dataclass
class MergeResult:
    items: list[Item]
    new_count: int
    updated_count: int


def net_cost(list_cost: float, discount_percent: float) -> float:
    """Cost after the supplier discount. This, not the list price, is stored as cost."""
    return list_cost * (1 - discount_percent / 100)


def map_master_row(row: dict[str, Any]) -> dict[str, Any] | None:
    """
    Maps one master-list row to item fields.
    Returns None when the row has no item code. Blank or non-numeric
    prices and quantities count as 0.
    """
    columns = settings.MASTER_COLUMNS
    code = clean_text(row.get(columns["id"]))
    if code is None:
        return None

    discount = parse_number(row.get(columns["discount"])) or 0.0
    list_cost = parse_number(row.get(columns["cost_price"])) or 0.0

    return {
        "id": code,
        "description": clean_text(row.get(columns["description"])) or "",
        "group": clean_text(row.get(columns["group"])) or "",
        "sub_group": clean_text(row.get(columns["sub_group"])) or "",
        "brand": clean_text(row.get(columns["brand"])) or "",
        "supplier_description": clean_text(row.get(columns["supplier_description"])) or "",
        "cost_price": net_cost(list_cost, discount),
        "discount": discount,
        "sale_price": parse_number(row.get(columns["sale_price"])) or 0.0,
        "quantity": max(parse_int(row.get(columns["quantity"])) or 0, 0),
    }


def merge_master_rows(existing: list[Item], rows: Iterable[dict[str, Any]]) -> MergeResult:
    """
    Merges master rows into `existing`, keyed by item code.

    Known codes get their catalog fields overwritten while lots, notes and
    pricing history are kept. Unknown codes become new items. Both are flagged
    for update with the row's quantity staged for dating. Existing items keep
    their order and new items are appended in file order.
    """
    mapped = [record for record in (map_master_row(row) for row in rows) if record]
    if not mapped:
        raise NoValidRowsError("master list")

    catalog: OrderedDict[str, Item] = OrderedDict((item.id, item) for item in existing)
    new_count = updated_count = 0

    for record in mapped:
        quantity = record.pop("quantity")
        current = catalog.get(record["id"])
        if current is not None:
            update = {name: record[name] for name in MERGED_FIELDS}
            update.update(is_update=True, pending_stock_qty=quantity)
            catalog[record["id"]] = current.model_copy(update=update)
            updated_count += 1
        else:
            catalog[record["id"]] = Item(**record, is_update=True, pending_stock_qty=quantity)
            new_count += 1

    logger.info(f"  > Master list merged: {new_count} new, {updated_count} updated.")
    return MergeResult(items=list(catalog.values()), new_count=new_count, updated_count=updated_count)
