"""
Utility helpers: directory setup, logging config, and time utils.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import ReceiverConfig

LOGGER_NAME = "tm_receiver"
_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def ensure_dirs(*paths: Path) -> None:
    """Ensure each directory exists."""
    for p in paths:
        p.mkdir(parents=True, exist_ok=True)


def init_logging(cfg: ReceiverConfig) -> logging.Logger:
    """Configure a console logger + rotating file handler."""
    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False  # avoid duplicate logs if root has handlers

    # Re-initialization (tests, repeated CLI calls) must not stack handlers
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(ch)

    # File (rotating)
    if cfg.log_file is not None:
        log_file = Path(cfg.log_file)
        ensure_dirs(log_file.parent)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        fh.setLevel(log_level)
        fh.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(logger: Optional[logging.Logger] = None) -> logging.Logger:
    """Return the injected logger or the package logger."""
    return logger if logger is not None else logging.getLogger(LOGGER_NAME)


def utc_stamp(ts: Optional[float] = None) -> str:
    """Second-resolution UTC timestamp used in archival filenames."""
    when = time.time() if ts is None else ts
    return datetime.fromtimestamp(when, tz=timezone.utc).strftime("%Y%m%d_%H%M%S")
