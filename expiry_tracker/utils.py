import logging
import math
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

_REPORT_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def clean_text(value: Any) -> str | None:
    """Trims a spreadsheet cell; blank, missing and NaN cells become None."""
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def parse_number(value: Any) -> float | None:
    """
    Coerces a spreadsheet cell to a float, returning None when it is not numeric.
    Thousands separators are tolerated since POS exports often include them.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number) or not math.isfinite(number):
        return None
    return float(number)


def parse_int(value: Any) -> int | None:
    """Like parse_number, but truncates toward zero (so '12.7' counts as 12)."""
    number = parse_number(value)
    if number is None:
        return None
    return int(number)


def find_latest_report(directory: Path, prefix: str) -> tuple[Path, date] | None:
    """
    Finds the most recent file in `directory` whose name starts with `prefix`.
    The date is read from a YYYY-MM-DD stamp in the filename when present,
    otherwise from the file's modification time.
    """
    if not directory.exists():
        return None

    candidates = []
    for path in directory.iterdir():
        if not path.is_file() or not path.name.startswith(prefix):
            continue
        if path.suffix.lower() not in (".csv", ".xlsx", ".xls"):
            continue
        match = _REPORT_DATE_RE.search(path.name)
        if match:
            try:
                report_date = date.fromisoformat(match.group(1))
            except ValueError:
                report_date = date.fromtimestamp(path.stat().st_mtime)
        else:
            report_date = date.fromtimestamp(path.stat().st_mtime)
        candidates.append((report_date, path.stat().st_mtime, path))

    if not candidates:
        return None

    report_date, _, path = max(candidates)
    return path, report_date


def load_csv(file_path: Path, skiprows: int = 0) -> pd.DataFrame | None:
    """
    A CSV loader with an encoding fallback.
    It will attempt to read a file in the following order:
    1. UTF-8 with BOM support ('utf-8-sig').
    2. Latin-1, a permissive fallback that never fails but might misinterpret characters.

    Every column is read as text so item codes like '00123' keep their zeros;
    numeric fields are coerced later by the engines that use them.
    """
    read_options = {"skiprows": skiprows, "dtype": str, "keep_default_na": False}
    try:
        return pd.read_csv(file_path, encoding="utf-8-sig", **read_options)

    except UnicodeDecodeError:
        logger.info(f"UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'.")
        try:
            return pd.read_csv(file_path, encoding="latin-1", **read_options)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e_latin1:
            logger.error(f"Could not read {file_path.name} even with latin-1. Reason: {e_latin1}")
            return None

    except FileNotFoundError:
        logger.info(f"Report not found at {file_path}, skipping.")
        return None

    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e_general:
        logger.error(f"Could not parse {file_path.name}. Reason: {e_general}")
        return None
