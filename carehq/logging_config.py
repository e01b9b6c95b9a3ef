"""Logging setup for command-line use of the CareHQ client.

The library modules only create ``carehq.*`` loggers and never attach
handlers. ``setup_logging`` is what the CLI calls to make the request
trace from ``carehq.client`` (method, path, status, rate-limit updates)
land in a rotating file, while the terminal only shows INFO and above.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs")
LOG_FILE = os.path.join(LOG_DIR, "carehq.log")

# 5 MB per file, 3 rotated copies
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(level: int = logging.DEBUG, log_file: str = LOG_FILE) -> logging.Logger:
    """Attach file and console handlers to the ``carehq`` logger.

    Parameters
    ----------
    level : int
        Level for the logger and the file handler. DEBUG keeps the
        per-request trace lines.
    log_file : str
        Rotating log file; its directory is created if missing.

    Returns
    -------
    logging.Logger
        The ``carehq`` logger. Calling again returns it unchanged.
    """
    logger = logging.getLogger("carehq")
    logger.setLevel(level)
    if logger.handlers:
        return logger

    os.makedirs(os.path.dirname(log_file), exist_ok=True)
    logger.addHandler(_handler(
        RotatingFileHandler(log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"),
        level,
    ))
    # Request traces are DEBUG; keep them off the terminal.
    logger.addHandler(_handler(logging.StreamHandler(), logging.INFO))
    return logger
