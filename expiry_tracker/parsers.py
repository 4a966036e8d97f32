import logging
from pathlib import Path
from typing import Any

import pandas as pd

from . import settings
from .utils import load_csv

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _load_excel(file_path: Path) -> pd.DataFrame | None:
    """Reads the first sheet of a workbook as text, like `load_csv` does."""
    try:
        return pd.read_excel(file_path, sheet_name=0, dtype=str, keep_default_na=False)
    except FileNotFoundError:
        logger.info(f"Report not found at {file_path}, skipping.")
        return None
    except ValueError as e:
        logger.error(f"Could not read workbook {file_path.name}. Reason: {e}")
        return None


def load_sheet(file_path: Path) -> pd.DataFrame | None:
    """Loads a CSV or Excel export into a DataFrame of strings."""
    if file_path.suffix.lower() in (".xlsx", ".xls"):
        df = _load_excel(file_path)
    else:
        df = load_csv(file_path)
    if df is None:
        return None

    # Header cells sometimes carry stray spaces ("Itemcode ").
    df.columns = [str(col).strip() for col in df.columns]
    # Skip rows that are entirely blank (trailing lines in exports).
    blank = df.apply(lambda col: col.astype(str).str.strip() == "").all(axis="columns")
    return df.loc[~blank].reset_index(drop=True)


def _check_columns(df: pd.DataFrame, required: list[str], file_path: Path) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        logger.warning(f"  > ⚠️  {file_path.name} is missing columns: {', '.join(missing)}")


def parse_master_file(file_path: Path) -> list[Row]:
    """Rows of a master list export, keyed by the POS column names."""
    df = load_sheet(file_path)
    if df is None:
        return []
    _check_columns(df, [settings.MASTER_COLUMNS["id"]], file_path)
    logger.info(f"✅ Parsed {file_path.name}: {len(df)} rows.")
    return df.to_dict("records")


def parse_balance_file(file_path: Path) -> list[Row]:
    """Rows of a stock balance export (item code plus current balance)."""
    df = load_sheet(file_path)
    if df is None:
        return []
    _check_columns(df, [settings.BALANCE_CODE_COLUMN, settings.BALANCE_VALUE_COLUMN], file_path)
    logger.info(f"✅ Parsed {file_path.name}: {len(df)} rows.")
    return df.to_dict("records")
