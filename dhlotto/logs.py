from __future__ import annotations

import datetime as dt
import logging
import pathlib
import sys
from typing import Optional

LOGGER_NAME = "dhlotto"
DEFAULT_LOG_DIR = "logs"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def log_file_path(log_dir: str, today: Optional[dt.date] = None) -> pathlib.Path:
    day = today or dt.date.today()
    return pathlib.Path(log_dir) / f"lottery_{day.isoformat()}.log"


def configure_logging(verbose: bool = False, log_dir: Optional[str] = DEFAULT_LOG_DIR) -> logging.Logger:
    """Send application logs to stdout and, when ``log_dir`` is set, a daily file.

    Returns the application logger that components receive at construction.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir:
        path = log_file_path(log_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info("Logging to %s", path)

    return logger


def shutdown_logging(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger(LOGGER_NAME)
    for handler in list(target.handlers):
        handler.flush()
        handler.close()
        target.removeHandler(handler)
