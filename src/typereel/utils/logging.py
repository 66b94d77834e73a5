from __future__ import annotations

import logging
from typing import Optional

from tqdm import tqdm

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class TqdmHandler(logging.StreamHandler):
    """Writes records above any active progress bar instead of through it."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def configure_logging(level: str = "INFO") -> None:
    handler = TqdmHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
    # Pillow logs every plugin import at DEBUG.
    logging.getLogger("PIL").setLevel(logging.WARNING)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(getattr(logging, level.upper(), logger.level))
    return logger
