"""
Logging setup shared by the API, the CLI and the core modules.

Every module asks for its logger through get_logger("<area>"); loggers live
under the "veilpay." namespace so a single handler configures all of them.
"""
import logging
import sys
from typing import Optional

from veilpay.config import LOG_LEVEL, VERBOSE

ROOT_LOGGER_NAME = "veilpay"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None, stream=None) -> logging.Logger:
    """
    Attach a stream handler to the veilpay root logger.

    Safe to call more than once; only the level is updated on later calls.

    Args:
        level: Level name (default: DEBUG when VERBOSE is set, else LOG_LEVEL)
        stream: Output stream (default: stderr)
    """
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel((level or ("DEBUG" if VERBOSE else LOG_LEVEL)).upper())
    if not _configured:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Return the logger for one area of the code (e.g. "transfer", "ledger.rpc")."""
    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        logger.addHandler(logging.NullHandler())
    return logger
