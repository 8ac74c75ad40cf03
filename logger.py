import logging
import sys

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_handler = None


def _console_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """Return a logger writing to stdout at the configured LOG_LEVEL."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(_console_handler())
        logger.setLevel(LOG_LEVEL)
        logger.propagate = False
    return logger
