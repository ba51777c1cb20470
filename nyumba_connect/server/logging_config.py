"""Logging configuration for server events."""
import logging

from .config import LOG_FILE
from ..shared.logging_config import configure_logging as _configure_logging


def configure_logging() -> logging.Logger:
    """Configure application-wide logging to a rotating file handler."""
    return _configure_logging("nyumba_connect_server", LOG_FILE)
