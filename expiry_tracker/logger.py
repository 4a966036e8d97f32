import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from . import settings

LOG_FILENAME = "expiry_tracker.log"


def setup_logger(
    name: str | None = None,
    log_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """
    Configures the 'expiry_tracker' logging tree for the CLI.

    Console output stays bare (just the message) so import summaries read like a
    report; the rotating file keeps timestamps for auditing imports and undos.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Called once per CLI invocation, but tests and scripts may call it again.
    if logger.hasHandlers():
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    log_dir = log_dir or settings.BASE_DIR / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(file_handler)

    return logger
