"""Logging for the reminder bot.

One dated log file per day under LOG_DIR, plus console output when the
process is attached to a terminal. Files older than LOG_RETENTION_DAYS are
pruned when logging is set up.
"""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

from config import LOG_DIR, LOG_LEVEL, LOG_RETENTION_DAYS

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"


def _prune_old_logs(log_dir: Path, keep_days: int) -> None:
    """Delete dated log files older than keep_days."""
    cutoff = (datetime.now() - timedelta(days=keep_days)).strftime("%Y-%m-%d")
    for path in log_dir.glob("*.log"):
        # Names are YYYY-MM-DD.log so string comparison orders them by date
        if path.stem < cutoff:
            try:
                path.unlink()
            except OSError:
                pass


def setup_logging(log_dir: Path = LOG_DIR, level: str = LOG_LEVEL) -> logging.Logger:
    """Set up logging to a dated file and, when interactive, the console."""
    logger = logging.getLogger("nudgebot")
    logger.setLevel(level)
    logger.handlers.clear()

    _prune_old_logs(log_dir, LOG_RETENTION_DAYS)

    file_handler = logging.FileHandler(
        log_dir / f"{datetime.now().strftime('%Y-%m-%d')}.log", encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)

    if sys.stdout is not None and sys.stdout.isatty():
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(console_handler)

    return logger


# Global logger instance
logger = setup_logging()
