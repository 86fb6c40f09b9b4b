# glo_cloud/logging_config.py
"""Logging setup: one format, console handler, optional file handler."""
import logging
import sys
from pathlib import Path

from .config import settings

_logging_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> None:
    """Configure the root logger once per process."""
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_file_used = None
    if settings.LOG_FILE:
        try:
            path = Path(settings.LOG_FILE)
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(path), encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            root.addHandler(fh)
            # uvicorn loggers do not always propagate to root
            for uvicorn_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
                logging.getLogger(uvicorn_name).addHandler(fh)
            log_file_used = str(path)
        except OSError as e:
            root.warning("Could not open log file %s: %s", settings.LOG_FILE, e)

    get_logger("glo_cloud").info(
        "Logging configured: level=%s, file=%s", settings.LOG_LEVEL, log_file_used or "console only"
    )


def get_logger(name: str = "glo_cloud") -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
