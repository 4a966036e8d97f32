import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from . import data_handler, settings
from .errors import NoValidRowsError
from .schemas import InventoryDocument

logger = logging.getLogger(__name__)


class ImportPipeline(ABC):
    """
    Abstract base class for spreadsheet imports (master list, stock balance).
    Follows an Extract -> Transform -> Load pattern over the inventory document:
    the file is parsed into rows, an engine turns (document, rows) into a new
    document state, and the whole document is persisted in one write.
    """

    def __init__(self, import_type: str, db_path: Optional[Path] = None, dry_run: bool = False):
        self.import_type = import_type
        self.db_path = db_path or settings.DB_FILE_PATH
        self.dry_run = dry_run
        # Counts reported back to the user once the import finishes.
        self.summary: dict[str, Any] = {}

    def run(self, file_path: Path) -> Optional[dict[str, Any]]:
        """
        Orchestrates the pipeline execution. Returns the summary, or None when
        the file held no usable rows (nothing is written in that case).
        """
        logger.info(f"🚀 STEP: {self.import_type.upper()} IMPORT")
        logger.info("-" * 30)

        # --- 1. EXTRACT ---
        rows = self.extract(file_path)
        if not rows:
            logger.warning(f"⚠️ No rows read from {file_path.name}. Nothing imported.")
            return None

        # --- 2. TRANSFORM ---
        document = data_handler.load_document(self.db_path)
        try:
            self.transform(document, rows)
        except NoValidRowsError as e:
            logger.error(f"❌ {e}")
            return None

        # --- 3. LOAD ---
        self.load(document)

        logger.info(f"✅ {self.import_type.capitalize()} Import Finished.\n")
        logger.info("=" * 60)
        return self.summary

    @abstractmethod
    def extract(self, file_path: Path) -> list[dict[str, Any]]:
        """Reads the uploaded file into raw rows keyed by column name."""

    @abstractmethod
    def transform(self, document: InventoryDocument, rows: list[dict[str, Any]]) -> None:
        """
        Applies the rows to `document` in memory and fills `self.summary`.
        Raises NoValidRowsError when no row is usable.
        """

    def load(self, document: InventoryDocument):
        """Prints the summary and saves the document."""
        logger.info("\n--- Import Summary ---")
        for key, value in self.summary.items():
            logger.info(f"{key}: {value}")

        if self.dry_run:
            logger.info("🧪 Dry run: inventory store left unchanged.")
            return
        data_handler.save_document(document, self.db_path)
        logger.info(f"💾 Inventory saved to {self.db_path}")
