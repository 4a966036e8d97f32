import logging
from pathlib import Path
from typing import Any

from expiry_tracker import parsers
from expiry_tracker.errors import NoValidRowsError
from expiry_tracker.pipeline import ImportPipeline
from expiry_tracker.reconciliation import parse_balance_rows, reconcile_balances
from expiry_tracker.schemas import InventoryDocument
from expiry_tracker.snapshot import begin_batch

logger = logging.getLogger(__name__)


class StockUpdatePipeline(ImportPipeline):
    """
    Reconciles lots against a stock balance export (FIFO on shrinkage, staged
    quantity on growth). The pre-import catalog is kept so the batch can be undone.
    """

    def __init__(self, **kwargs):
        super().__init__("stock balance", **kwargs)

    def extract(self, file_path: Path) -> list[dict[str, Any]]:
        logger.info(f"--- Reading stock balances: {file_path.name} ---")
        return parsers.parse_balance_file(file_path)

    def transform(self, document: InventoryDocument, rows: list[dict[str, Any]]) -> None:
        updates = parse_balance_rows(rows)
        if not updates:
            raise NoValidRowsError("stock balance file")

        # The snapshot must exist before any item is touched.
        token = begin_batch(document)

        logger.info("\n--- Reconciling lots (FIFO) ---")
        result = reconcile_balances(document.items, updates)
        document.items = result.items

        staged = sum(item.pending_stock_qty for item in result.items if item.is_update)
        self.summary = {
            "Rows read": len(rows),
            "Valid rows": len(updates),
            "Items processed": result.processed_count,
            "Unknown item codes": len(result.skipped_codes),
            "Units awaiting expiry dates": staged,
            "Undo token": token,
        }
