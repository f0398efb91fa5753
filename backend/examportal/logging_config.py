"""Logging configuration helpers for the exam portal."""

import logging


def configure_logging(level=logging.INFO) -> logging.Logger:
    """Configure basic logging for the application and return the package logger."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("examportal")
