"""Exceptions raised by the expiry tracker core.

Per-row problems in an import (a missing item code, a balance that is not a
number, a code that is not in the catalog) are never raised: those rows are
logged and skipped. Only batch-level conditions surface as exceptions.
"""


class ExpiryTrackerError(Exception):
    """Base class for all expiry tracker errors."""


class NoValidRowsError(ExpiryTrackerError):
    """An uploaded batch contained no usable rows at all."""

    def __init__(self, source: str = "import"):
        self.source = source
        super().__init__(f"No valid items found in {source}.")


class NothingToUndoError(ExpiryTrackerError):
    """Undo was requested but no reconciliation snapshot is stored."""

    def __init__(self, message: str = "Nothing to undo."):
        super().__init__(message)


class NotificationNotFoundError(ExpiryTrackerError):
    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class DocumentError(ExpiryTrackerError):
    """The persisted inventory document could not be read or validated."""


class ItemNotFoundError(ExpiryTrackerError):
    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class EntryNotFoundError(ExpiryTrackerError):
    """No lot of the item carries the given `added_at` key."""

    def __init__(self, item_id: str, added_at: str):
        self.item_id = item_id
        self.added_at = added_at
        super().__init__(f"No lot added at {added_at} on item {item_id}")


class RuleNotFoundError(ExpiryTrackerError):
    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Pricing rule not found: {rule_id}")
