"""Logging module for the gateway client."""

from .setup import LOGGER_NAME, logger, mask_headers, setup_logging

__all__ = [
    "LOGGER_NAME",
    "logger",
    "mask_headers",
    "setup_logging",
]
