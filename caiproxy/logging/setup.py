"""Logging configuration for the proxy."""

import hashlib
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Set up the ``caiproxy`` logger with a stdout handler."""
    logger = logging.getLogger("caiproxy")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logger.level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    # Propagate so pytest's caplog and uvicorn's root handlers see records too
    logger.propagate = True

    return logger


def credential_tag(credential: str) -> str:
    """Short, non-reversible label for a credential in log lines."""
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()[:8]


# Global logger instance
logger = setup_logging()
