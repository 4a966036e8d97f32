"""Batch editor operations: dating staged stock and clearing pending flags."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from .errors import EntryNotFoundError, ItemNotFoundError
from .schemas import ExpiryEntry, Item, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewExpiry:
    """A date (and optionally a quantity) typed against a pending item."""

    item_id: str
    date: date
    quantity: Optional[int] = None


def pending_items(items: list[Item], groups: Optional[list[str]] = None) -> list[Item]:
    """Items waiting for a human to date their stock, optionally filtered by group."""
    return [
        item for item in items
        if item.is_update and (not groups or item.group in groups)
    ]


def add_expiries(
    items: list[Item],
    new_expiries: list[NewExpiry],
    now: Optional[datetime] = None,
) -> tuple[list[Item], int]:
    """
    Appends dated lots to their items.

    A missing quantity takes whatever staged quantity the item still has after
    the earlier entries of this batch. Entries that end up with no positive
    quantity, or name an unknown item, are skipped.
    Touched items have their staged quantity reset and their pending flag cleared.
    Returns the new item list and the number of lots added.
    """
    stamp = now or utc_now()
    known = {item.id: item for item in items}
    by_item: defaultdict[str, list[ExpiryEntry]] = defaultdict(list)
    staged_left = {item.id: item.pending_stock_qty for item in items}

    for index, new in enumerate(new_expiries):
        item = known.get(new.item_id)
        if item is None:
            logger.warning(f"Ignoring expiry for unknown item {new.item_id!r}.")
            continue
        quantity = new.quantity if new.quantity is not None else staged_left[item.id]
        if quantity <= 0:
            logger.warning(f"Ignoring expiry for {new.item_id!r}: no positive quantity.")
            continue
        staged_left[item.id] = max(staged_left[item.id] - quantity, 0)
        # Offset each lot so lots added in one batch keep distinct identities.
        added_at = (stamp + timedelta(microseconds=index)).isoformat()
        by_item[new.item_id].append(ExpiryEntry(date=new.date, quantity=quantity, added_at=added_at))

    updated = [
        item.model_copy(
            update={
                "expiry_entries": [*item.expiry_entries, *by_item[item.id]],
                "pending_stock_qty": 0,
                "is_update": False,
            }
        )
        if item.id in by_item
        else item
        for item in items
    ]
    return updated, sum(len(entries) for entries in by_item.values())


def clear_pending_updates(items: list[Item]) -> list[Item]:
    return [
        item.model_copy(update={"is_update": False, "pending_stock_qty": 0})
        for item in items
    ]


def remove_entry(item: Item, added_at: str) -> Item:
    """Deletes the lot identified by `added_at`. Unknown keys leave the item unchanged."""
    remaining = [entry for entry in item.expiry_entries if entry.added_at != added_at]
    if len(remaining) == len(item.expiry_entries):
        return item
    return item.model_copy(update={"expiry_entries": remaining})


def update_entry_quantity(item: Item, added_at: str, quantity: int) -> Item:
    """Corrects the quantity of one lot. A quantity of 0 deletes the lot."""
    if quantity < 0:
        raise ValueError(f"Lot quantity cannot be negative: {quantity}")
    if not any(entry.added_at == added_at for entry in item.expiry_entries):
        raise EntryNotFoundError(item.id, added_at)
    if quantity == 0:
        return remove_entry(item, added_at)
    entries = [
        entry.model_copy(update={"quantity": quantity}) if entry.added_at == added_at else entry
        for entry in item.expiry_entries
    ]
    return item.model_copy(update={"expiry_entries": entries})


def set_notes(item: Item, notes: Optional[str]) -> Item:
    return item.model_copy(update={"notes": (notes or "").strip()})


def find_item(items: list[Item], item_id: str) -> tuple[int, Item]:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index, item
    raise ItemNotFoundError(item_id)
