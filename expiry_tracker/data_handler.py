import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import pandas as pd
import requests
from pydantic import ValidationError

from . import settings
from . import utils
from .errors import DocumentError
from .schemas import InventoryDocument, Notification

logger = logging.getLogger(__name__)


def load_document(path: Optional[Path] = None) -> InventoryDocument:
    """
    Reads the inventory document, creating a default one when the file is missing.
    Sections absent from older files are filled with their defaults.
    """
    path = path or settings.DB_FILE_PATH
    if not path.exists():
        logger.info(f"No inventory store at {path}. Creating a new one.")
        document = InventoryDocument()
        save_document(document, path)
        return document

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        return InventoryDocument.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as e:
        raise DocumentError(f"Inventory store {path} is unreadable: {e}") from e


def save_document(document: InventoryDocument, path: Optional[Path] = None) -> Path:
    """
    Writes the whole document atomically. Items and the undo snapshot always
    land on disk together: either the new file replaces the old one or the old
    one is left as it was.
    """
    path = path or settings.DB_FILE_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document.dump(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def save_expiry_report(df: pd.DataFrame, output_dir: Optional[Path] = None) -> Path:
    """Saves the categorized expiry report to a dated CSV."""
    output_dir = output_dir or settings.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()

    csv_path = output_dir / f"{settings.EXPIRY_REPORT_FILENAME_BASE}_{date_suffix}.csv"
    df.to_csv(csv_path, index=False)
    logger.info(f"✅ Expiry report saved to: {csv_path}")
    return csv_path


def post_to_webhook(notification: Notification, expiring: list, recipients: list[str]) -> None:
    """
    Posts a raised reminder and the lots behind it to the webhook.
    Delivery failures are logged; the notification is still recorded.
    """
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return

    logger.info(f"🚀 Posting reminder to webhook: {settings.WEBHOOK_URL}")

    payload = {
        "notification": notification.model_dump(mode="json", by_alias=True),
        "recipients": recipients,
        "expiringItems": [
            {
                "id": lot.item_id,
                "description": lot.description,
                "expiryDate": lot.expiry_date.isoformat(),
                "quantity": lot.quantity,
            }
            for lot in expiring
        ],
    }

    try:
        response = requests.post(
            settings.WEBHOOK_URL, json=payload, timeout=settings.WEBHOOK_TIMEOUT_SECONDS
        )
        response.raise_for_status()
        logger.info("✅ Reminder successfully posted to webhook.")
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
