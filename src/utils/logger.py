"""Centralized logging setup for the identity document OCR pipeline."""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(level: str = "INFO", fmt: str = DEFAULT_FORMAT) -> None:
    """Configure the root logger once with a stdout handler.

    Args:
        level: Logging level name. Unknown names fall back to INFO.
        fmt: Format string for log records.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(numeric_level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%dT%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger, typically for ``__name__``."""
    return logging.getLogger(name)
