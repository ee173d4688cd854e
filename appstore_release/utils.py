"""Shared helpers for the App Store release client."""

import logging
import os

API_HOST = "https://api.appstoreconnect.apple.com"
LOG_LEVEL = os.getenv("ASC_LOG_LEVEL", "INFO").upper()

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger configured with the package log level"""
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(LOG_LEVEL)
    return logger
