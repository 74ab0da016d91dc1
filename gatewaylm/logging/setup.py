"""Logging configuration for the gateway client."""

import logging
import sys

LOGGER_NAME = "gatewaylm"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Set up the package logger with a stdout handler."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers so repeated calls don't duplicate output
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.propagate = True

    return logger


def mask_headers(headers) -> dict[str, str]:
    """Return a copy of headers that is safe to log."""
    masked: dict[str, str] = {}
    for key, value in dict(headers).items():
        if key.lower() in {"authorization", "x-api-key", "helicone-auth"}:
            masked[key] = "***"
        else:
            masked[key] = value
    return masked


# Global logger instance
logger = setup_logging()
