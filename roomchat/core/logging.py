# roomchat/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that only matter when something is wrong
NOISY_LOGGERS = ("redis", "websockets", "uvicorn.access")


def setup_logging() -> None:
    """
    Configure logging for the chat server once, at import of roomchat.main.

    - LOG_LEVEL picks the root level (INFO when unset or unknown)
    - Room events, persistence errors and connect/disconnect lines go to stdout
    - Redis client and websocket frame chatter is kept at WARNING
    """
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level_name, logging.INFO)

    # Under `uvicorn roomchat.main:app` the root logger may already have handlers
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for a roomchat module, e.g. get_logger(__name__) in main.py."""
    return logging.getLogger(name)
