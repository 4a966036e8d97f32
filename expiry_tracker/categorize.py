"""Buckets every lot of every item into time-to-expiry bands for the dashboard."""

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum

import pandas as pd

from .schemas import Item


class ExpiryBand(str, Enum):
    # Declaration order is the evaluation and display order.
    EXPIRED = "expired"
    UNDER_1_MONTH = "<1 month"
    ONE_TO_2_MONTHS = "1-2 months"
    TWO_TO_5_MONTHS = "2-5 months"
    FIVE_MONTHS_TO_1_YEAR = "5 months-1 year"
    OVER_1_YEAR = ">1 year"


# Inclusive upper bound, in days, of each non-expired band.
BAND_LIMITS = (
    (ExpiryBand.UNDER_1_MONTH, 30),
    (ExpiryBand.ONE_TO_2_MONTHS, 60),
    (ExpiryBand.TWO_TO_5_MONTHS, 150),
    (ExpiryBand.FIVE_MONTHS_TO_1_YEAR, 365),
)


@dataclass(frozen=True)
class CategorizedEntry:
    """One lot together with its parent item's display fields."""

    item_id: str
    description: str
    group: str
    brand: str
    expiry_date: date
    quantity: int
    added_at: str
    days_until_expiry: int


def days_until(expiry_date: date, as_of: date) -> int:
    return (expiry_date - as_of).days


def band_for(days_until_expiry: int) -> ExpiryBand:
    if days_until_expiry < 0:
        return ExpiryBand.EXPIRED
    for band, limit in BAND_LIMITS:
        if days_until_expiry <= limit:
            return band
    return ExpiryBand.OVER_1_YEAR


def categorize(items: list[Item], as_of: date) -> dict[ExpiryBand, list[CategorizedEntry]]:
    """
    Places every lot in exactly one band. Every band is present in the result,
    and entries within a band are sorted soonest-expiring first.
    """
    categorized: dict[ExpiryBand, list[CategorizedEntry]] = {band: [] for band in ExpiryBand}

    for item in items:
        for entry in item.expiry_entries:
            days = days_until(entry.date, as_of)
            categorized[band_for(days)].append(
                CategorizedEntry(
                    item_id=item.id,
                    description=item.description,
                    group=item.group,
                    brand=item.brand,
                    expiry_date=entry.date,
                    quantity=entry.quantity,
                    added_at=entry.added_at,
                    days_until_expiry=days,
                )
            )

    for entries in categorized.values():
        entries.sort(key=lambda e: e.days_until_expiry)
    return categorized


def band_counts(categorized: dict[ExpiryBand, list[CategorizedEntry]]) -> dict[str, int]:
    return {band.value: len(entries) for band, entries in categorized.items()}


def categorized_frame(categorized: dict[ExpiryBand, list[CategorizedEntry]]) -> pd.DataFrame:
    """Flattens the bands into one DataFrame, in band order, for the CSV report."""
    rows = [
        {"band": band.value, **asdict(entry)}
        for band, entries in categorized.items()
        for entry in entries
    ]
    columns = ["band"] + list(CategorizedEntry.__dataclass_fields__)
    return pd.DataFrame(rows, columns=columns)
