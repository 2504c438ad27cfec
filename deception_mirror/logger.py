"""
Centralized logging configuration for Deception Mirror.

Usage:
    from deception_mirror.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Analysis done | score=%.2f", score)
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ROOT_NAME = "deception_mirror"

_configured = False


def _setup_root_logger() -> None:
    """Attach console + rotating file handlers to the package logger once."""
    global _configured
    if _configured:
        return
    _configured = True

    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger(_ROOT_NAME)
    root.setLevel(level)

    # Streamlit re-imports modules on rerun
    if root.handlers:
        return

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_dir = os.getenv("LOG_DIR") or os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs")
    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "pipeline.log"),
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
            encoding="utf-8",
        )
    except OSError as exc:
        root.warning("File logging disabled (%s): %s", log_dir, exc)
        return
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the 'deception_mirror' namespace."""
    _setup_root_logger()
    if name != _ROOT_NAME and not name.startswith(_ROOT_NAME + "."):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)
