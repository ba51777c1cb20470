"""Logging configuration for client events."""
import logging

from .config import LOG_FILE
from ..shared.logging_config import configure_logging as _configure_logging


def configure_logging() -> logging.Logger:
    """Configure the client logger writing to a rotating file in the home directory."""
    return _configure_logging("nyumba_connect_client", LOG_FILE)
