from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def reference_date(moment: Optional[datetime] = None) -> date:
    """The calendar day used for every days-until-expiry count (UTC)."""
    return as_utc(moment or utc_now()).date()


class _Document(BaseModel):
    """
    Base for everything stored in the inventory document.
    Field names are snake_case in Python and camelCase on disk, so we can
    build models from either form and dump them back with friendly aliases.
    """

    model_config = ConfigDict(populate_by_name=True)


class ExpiryEntry(_Document):
    """One dated lot of an item's stock. `added_at` identifies the lot within its item."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: date
    quantity: int = Field(..., gt=0)
    added_at: str = Field(default_factory=lambda: utc_now().isoformat(), alias="addedAt")


class PricingHistoryEntry(_Document):
    date: datetime = Field(default_factory=utc_now)
    old_price: Optional[float] = Field(default=None, alias="oldPrice")
    new_price: float = Field(..., alias="newPrice")
    rule_applied: str = Field(..., alias="ruleApplied")
    includes_vat: bool = Field(default=True, alias="includesVat")


class Item(_Document):
    """A catalog item, keyed by its externally assigned item code."""

    id: str = Field(..., min_length=1)
    description: str = ""
    group: str = ""
    sub_group: str = Field(default="", alias="subGroup")
    brand: str = ""
    supplier_description: str = Field(default="", alias="supplierDescription")
    cost_price: float = Field(default=0.0, alias="costPrice")
    discount: float = 0.0
    sale_price: float = Field(default=0.0, alias="salePrice")
    expiry_entries: list[ExpiryEntry] = Field(default_factory=list, alias="expiryEntries")
    notes: str = ""
    pricing_history: list[PricingHistoryEntry] = Field(
        default_factory=list, alias="pricingHistory"
    )
    is_update: bool = Field(default=False, alias="isUpdate")
    pending_stock_qty: int = Field(default=0, ge=0, alias="pendingStockQty")

    @field_validator("id", mode="before")
    @classmethod
    def _strip_code(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value).strip()

    @field_validator(
        "description", "group", "sub_group", "brand", "supplier_description", "notes",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        # Spreadsheet cells come through as None/NaN when blank.
        if value is None or value != value:
            return ""
        return str(value).strip()

    @property
    def total_quantity(self) -> int:
        return sum(entry.quantity for entry in self.expiry_entries)


class PricingRule(_Document):
    """Markup rule. A blank selector field matches any value."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    supplier: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = Field(default=None, alias="subCategory")
    brand: Optional[str] = None
    percentage: float

    def label(self) -> str:
        parts = [self.supplier, self.category, self.sub_category, self.brand]
        return "/".join(p or "*" for p in parts) + f" @ {self.percentage:g}%"


class ReminderSettings(_Document):
    reminder_days: int = Field(default=30, ge=0, alias="reminderDays")
    recipient_emails: list[str] = Field(default_factory=list, alias="recipientEmails")


class Notification(_Document):
    id: str = Field(default_factory=lambda: str(uuid4()))
    date: datetime = Field(default_factory=utc_now)
    type: str = "reminder"
    content: str
    read: bool = False

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class Snapshot(_Document):
    """Deep copy of the item catalog taken right before a stock-update batch."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    taken_at: datetime = Field(default_factory=utc_now, alias="takenAt")
    items: list[Item] = Field(default_factory=list)


class InventoryDocument(_Document):
    """The single persisted document that holds all application state."""

    items: list[Item] = Field(default_factory=list)
    settings: ReminderSettings = Field(default_factory=ReminderSettings)
    notifications: list[Notification] = Field(default_factory=list)
    pricing_rules: list[PricingRule] = Field(default_factory=list, alias="pricingRules")
    backup: Optional[Snapshot] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_sections(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Older stores may hold null sections or a bare item list as the backup.
        for key in ("items", "notifications", "pricingRules"):
            if data.get(key) is None:
                data.pop(key, None)
        if data.get("settings") is None:
            data.pop("settings", None)
        if isinstance(data.get("backup"), list):
            data["backup"] = {"items": data["backup"]}
        return data

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class BalanceUpdate(BaseModel):
    """One validated row from a stock balance file."""

    item_id: str = Field(..., min_length=1)
    balance: int
