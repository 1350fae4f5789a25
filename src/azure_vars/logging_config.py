"""File-only logging; the TUI owns the terminal."""

from __future__ import annotations

import logging
import os

LOG_ENV_VAR = "AZURE_VARS_LOG"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> str | None:
    """
    Configures the logger for the 'azure_vars' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Path to write logs to. Falls back to $AZURE_VARS_LOG;
            without either, logging stays silent.

    Returns:
        The log file in use, if any.
    """
    logger = logging.getLogger("azure_vars")
    logger.setLevel(level)

    # Avoid duplicate handlers when called twice in one process (tests)
    if logger.hasHandlers():
        logger.handlers.clear()

    log_file = log_file or os.environ.get(LOG_ENV_VAR)
    if not log_file:
        logger.addHandler(logging.NullHandler())
        logger.propagate = False
        return None

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )
    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    logger.propagate = False

    logger.info("Logging initialized.")
    return log_file
