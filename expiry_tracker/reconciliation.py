"""
FIFO reconciliation of dated lots against an externally reported stock balance.

A balance file only tells us how many units of an item exist today. When that
number shrinks we assume the oldest stock left first and consume lots in
ascending expiry order. When it grows we cannot know the expiry date of the new
units, so the difference is staged on the item (`pending_stock_qty`) until
someone dates it through the batch editor.

Everything here is a pure function of (items, input) -> new items. Reading the
file, taking the undo snapshot and persisting the result belong to the caller.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Iterable

from . import settings
from .errors import NoValidRowsError
from .schemas import BalanceUpdate, ExpiryEntry, Item
from .utils import clean_text, parse_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """New lot list for one item plus the quantity to stage for later dating."""

    entries: list[ExpiryEntry]
    pending_delta: int = 0

    @property
    def total(self) -> int:
        return sum(entry.quantity for entry in self.entries)


@dataclass
class BatchResult:
    items: list[Item]
    processed_count: int
    skipped_codes: list[str] = field(default_factory=list)


def consume_fifo(entries: Iterable[ExpiryEntry], quantity: int) -> list[ExpiryEntry]:
    """
    Removes `quantity` units from `entries`, oldest expiry first.

    Lots that are used up are dropped; the lot on the boundary is replaced by a
    trimmed copy. Lots sharing a date keep their original relative order.
    """
    to_remove = quantity
    remaining: list[ExpiryEntry] = []
    for entry in sorted(entries, key=lambda e: e.date):
        if to_remove <= 0:
            remaining.append(entry)
        elif entry.quantity <= to_remove:
            to_remove -= entry.quantity
        else:
            remaining.append(entry.model_copy(update={"quantity": entry.quantity - to_remove}))
            to_remove = 0
    return remaining


def reconcile(item: Item, reported_balance: int) -> ReconcileResult:
    """Works out the lots `item` should hold once its total equals `reported_balance`."""
    current_total = item.total_quantity

    if reported_balance == current_total:
        return ReconcileResult(entries=list(item.expiry_entries))

    if reported_balance < current_total:
        # A negative balance empties the item but never goes below zero.
        to_remove = current_total - max(reported_balance, 0)
        return ReconcileResult(entries=consume_fifo(item.expiry_entries, to_remove))

    return ReconcileResult(
        entries=list(item.expiry_entries),
        pending_delta=reported_balance - current_total,
    )


def apply_reconciliation(item: Item, reported_balance: int) -> Item:
    """Returns a copy of `item` with `reconcile` applied. Unchanged items are returned as-is."""
    result = reconcile(item, reported_balance)

    if result.pending_delta:
        return item.model_copy(
            update={
                "expiry_entries": result.entries,
                "pending_stock_qty": item.pending_stock_qty + result.pending_delta,
                "is_update": True,
            }
        )
    if result.entries == item.expiry_entries:
        return item
    return item.model_copy(update={"expiry_entries": result.entries})


def parse_balance_rows(rows: Iterable[dict[str, Any]]) -> list[BalanceUpdate]:
    """
    Turns raw spreadsheet rows into balance updates.
    Rows without an item code or with a non-numeric balance are dropped.
    """
    updates: list[BalanceUpdate] = []
    for row_number, row in enumerate(rows, start=1):
        code = clean_text(row.get(settings.BALANCE_CODE_COLUMN))
        balance = parse_int(row.get(settings.BALANCE_VALUE_COLUMN))
        if code is None or balance is None:
            logger.debug(f"Skipping balance row {row_number}: code={code!r}, balance={balance!r}")
            continue
        updates.append(BalanceUpdate(item_id=code, balance=balance))
    return updates


def reconcile_balances(items: list[Item], updates: list[BalanceUpdate]) -> BatchResult:
    """
    Applies a whole balance file to the catalog.

    Raises NoValidRowsError when `updates` is empty so the caller can report
    that the upload contained nothing usable. Unknown item codes are skipped.
    """
    if not updates:
        raise NoValidRowsError("stock balance file")

    catalog: OrderedDict[str, Item] = OrderedDict((item.id, item) for item in items)
    processed = 0
    skipped: list[str] = []

    for update in updates:
        item = catalog.get(update.item_id)
        if item is None:
            skipped.append(update.item_id)
            continue
        catalog[update.item_id] = apply_reconciliation(item, update.balance)
        processed += 1

    if skipped:
        logger.info(f"  > {len(skipped)} item code(s) not in the catalog were skipped.")

    return BatchResult(items=list(catalog.values()), processed_count=processed, skipped_codes=skipped)
