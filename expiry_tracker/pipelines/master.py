import logging
from pathlib import Path
from typing import Any

from expiry_tracker import parsers
from expiry_tracker.merge import merge_master_rows
from expiry_tracker.pipeline import ImportPipeline
from expiry_tracker.schemas import InventoryDocument

logger = logging.getLogger(__name__)


class MasterImportPipeline(ImportPipeline):
    """Adds new items from a POS master list and flags existing ones for stock dating."""

    def __init__(self, **kwargs):
        super().__init__("master list", **kwargs)

    def extract(self, file_path: Path) -> list[dict[str, Any]]:
        logger.info(f"--- Reading master list: {file_path.name} ---")
        return parsers.parse_master_file(file_path)

    def transform(self, document: InventoryDocument, rows: list[dict[str, Any]]) -> None:
        logger.info("\n--- Merging into catalog ---")
        result = merge_master_rows(document.items, rows)
        document.items = result.items

        self.summary = {
            "Rows read": len(rows),
            "New items": result.new_count,
            "Updated items": result.updated_count,
            "Catalog size": len(result.items),
        }
