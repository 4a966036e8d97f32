"""
Expiry reminder sweep.

The sweep is meant to be fired on a schedule (cron, a systemd timer, a CI job).
Schedules can fire more often than stock actually changes, so a reminder whose
type and content match one raised within the cooldown window is suppressed.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from . import settings
from .errors import NotificationNotFoundError
from .schemas import InventoryDocument, Item, Notification, ReminderSettings, as_utc, reference_date, utc_now

logger = logging.getLogger(__name__)

REMINDER_TYPE = "reminder"
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


@dataclass(frozen=True)
class ExpiringLot:
    item_id: str
    description: str
    expiry_date: date
    quantity: int
    days_until_expiry: int


Notifier = Callable[[Notification, list[ExpiringLot], list[str]], None]


def find_expiring(items: list[Item], reminder_days: int, as_of: date) -> list[ExpiringLot]:
    """Lots that have not expired yet but will within `reminder_days` days."""
    expiring = []
    for item in items:
        for entry in item.expiry_entries:
            days = (entry.date - as_of).days
            if 0 < days <= reminder_days:
                expiring.append(
                    ExpiringLot(
                        item_id=item.id,
                        description=item.description,
                        expiry_date=entry.date,
                        quantity=entry.quantity,
                        days_until_expiry=days,
                    )
                )
    expiring.sort(key=lambda lot: (lot.expiry_date, lot.item_id))
    return expiring


def reminder_content(expiring: list[ExpiringLot]) -> str:
    codes = ", ".join(sorted({lot.item_id for lot in expiring}))
    return f"Sent reminder for {len(expiring)} expiring item(s): {codes}."


def is_duplicate(
    notifications: list[Notification],
    candidate: Notification,
    now: datetime,
    cooldown: timedelta,
) -> bool:
    return any(
        n.type == candidate.type
        and n.content == candidate.content
        and now - n.date < cooldown
        for n in notifications
    )


class ReminderSweep:
    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        cooldown: Optional[timedelta] = None,
    ):
        self.notifier = notifier
        self.cooldown = cooldown or timedelta(minutes=settings.REMINDER_COOLDOWN_MINUTES)

    def run(self, document: InventoryDocument, now: Optional[datetime] = None) -> Optional[Notification]:
        """
        Raises a reminder for lots expiring within the configured window.

        Returns the notification prepended to `document.notifications`, or None
        when there are no recipients, nothing is expiring, or an identical
        reminder is still inside the cooldown window.
        """
        now = as_utc(now or utc_now())
        recipients = document.settings.recipient_emails
        if not recipients:
            logger.info("No recipient emails configured. Skipping reminder.")
            return None

        expiring = find_expiring(document.items, document.settings.reminder_days, reference_date(now))
        if not expiring:
            logger.info("No items are expiring soon. No reminder needed.")
            return None

        notification = Notification(date=now, type=REMINDER_TYPE, content=reminder_content(expiring))
        if is_duplicate(document.notifications, notification, now, self.cooldown):
            logger.info("Identical reminder raised recently. Suppressing duplicate.")
            return None

        if self.notifier is not None:
            self.notifier(notification, expiring, recipients)

        document.notifications.insert(0, notification)
        logger.info(f"📬 Reminder raised for {len(expiring)} lot(s).")
        return notification


def update_settings(
    document: InventoryDocument,
    reminder_days: Optional[int] = None,
    add_emails: Iterable[str] = (),
    remove_emails: Iterable[str] = (),
) -> ReminderSettings:
    """
    Edits the reminder window and recipient list in place.

    Malformed or already listed addresses are skipped with a warning.
    """
    current = document.settings
    if reminder_days is not None and reminder_days <= 0:
        raise ValueError(f"Reminder window must be at least one day, got {reminder_days}.")

    dropped = set(remove_emails)
    emails = [email for email in current.recipient_emails if email not in dropped]
    for email in add_emails:
        email = email.strip()
        if not EMAIL_PATTERN.fullmatch(email):
            logger.warning(f"Ignoring malformed email address {email!r}.")
        elif email in emails:
            logger.warning(f"{email} is already a recipient.")
        else:
            emails.append(email)

    document.settings = current.model_copy(
        update={
            "reminder_days": current.reminder_days if reminder_days is None else reminder_days,
            "recipient_emails": emails,
        }
    )
    return document.settings


def mark_read(document: InventoryDocument, notification_id: str) -> Notification:
    for notification in document.notifications:
        if notification.id == notification_id:
            notification.read = True
            return notification
    raise NotificationNotFoundError(notification_id)
