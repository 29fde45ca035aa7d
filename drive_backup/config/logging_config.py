"""
Logging Configuration for the Drive JSON backup service
JSON lines on stdout by default; LOG_FORMAT=simple for people reading a terminal or cron mail
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_SIMPLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _build_formatter() -> logging.Formatter:
    if os.getenv("LOG_FORMAT", "json").strip().lower() == "simple":
        return logging.Formatter(_SIMPLE_FORMAT, datefmt="%H:%M:%S")
    return jsonlogger.JsonFormatter(_JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")


def setup_logger(name: str = "drive_backup", level: Optional[str] = None) -> logging.Logger:
    """
    Return a logger with a single stdout handler.

    Args:
        name: usually __name__ of the calling module
        level: DEBUG/INFO/WARNING/ERROR; falls back to LOG_LEVEL, then INFO
    """
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_build_formatter())
        log.addHandler(handler)
    # Module loggers are children of "drive_backup"; each has its own handler
    log.propagate = False
    log.setLevel(getattr(logging, level, logging.INFO))
    return log


# Create default application logger
logger = setup_logger("drive_backup")
