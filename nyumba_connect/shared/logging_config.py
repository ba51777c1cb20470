"""Logging configuration shared by the server and the client."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_logging(name: str, log_file: Path, level: int = logging.INFO) -> logging.Logger:
    """Configure a named logger writing to a rotating file handler."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, delay=True)
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
