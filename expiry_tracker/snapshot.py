"""
Single-slot undo for stock-update batches.

The slot is `InventoryDocument.backup`. It is written only by `begin_batch`,
right before a batch mutates the items, and cleared only by `undo`. Starting a
new batch overwrites an unconsumed snapshot, so only the latest batch can be
undone. Callers persist the document (slot and items together) after either
call.
"""

import logging

from .errors import NothingToUndoError
from .schemas import InventoryDocument, Item, Snapshot

logger = logging.getLogger(__name__)


def copy_items(items: list[Item]) -> list[Item]:
    return [item.model_copy(deep=True) for item in items]


def begin_batch(document: InventoryDocument) -> str:
    """Stores a deep copy of the live items in the backup slot and returns its token."""
    if document.backup is not None:
        logger.info(f"Overwriting unused snapshot {document.backup.id} from {document.backup.taken_at:%Y-%m-%d %H:%M}.")

    snapshot = Snapshot(items=copy_items(document.items))
    document.backup = snapshot
    logger.debug(f"Snapshot {snapshot.id} captured ({len(snapshot.items)} items).")
    return snapshot.id


def has_snapshot(document: InventoryDocument) -> bool:
    return document.backup is not None


def undo(document: InventoryDocument, token: str | None = None) -> list[Item]:
    """
    Restores the items captured by the last `begin_batch` and empties the slot.

    Raises NothingToUndoError, leaving the document untouched, when the slot is
    empty or holds a different snapshot than `token`.
    """
    snapshot = document.backup
    if snapshot is None:
        raise NothingToUndoError()
    if token is not None and token != snapshot.id:
        raise NothingToUndoError(f"Snapshot {token} is no longer available.")

    document.items = snapshot.items
    document.backup = None
    logger.info(f"Restored {len(snapshot.items)} items from snapshot taken {snapshot.taken_at:%Y-%m-%d %H:%M}.")
    return document.items
