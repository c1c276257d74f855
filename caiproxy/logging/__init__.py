"""Logging module for the proxy."""

from .setup import LOG_DATE_FORMAT, LOG_FORMAT, credential_tag, logger, setup_logging

__all__ = [
    "LOG_DATE_FORMAT",
    "LOG_FORMAT",
    "credential_tag",
    "logger",
    "setup_logging",
]
