"""Logging configuration for the proxy."""

import logging
import os
import sys

LOGGER_NAME = "falproxy"


def setup_logging() -> logging.Logger:
    """Set up logging with proper handlers and formatters."""
    logger = logging.getLogger(LOGGER_NAME)
    level_name = os.getenv("FALPROXY_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Propagate to root so pytest's caplog and uvicorn see our records
    logger.propagate = True

    return logger


# Global logger instance
logger = setup_logging()
