"""
Logging Setup
=============

Configures the shared "CognitiveCycle" logger used by the stages and the
orchestrator.
"""

import logging
import os
from typing import Optional

LOGGER_NAME = "CognitiveCycle"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class DummyLogger:
    """No-op logger for disabled logging."""
    def __getattr__(self, name):
        return lambda *args, **kwargs: None


def setup_logger(level: str = "INFO", log_file: Optional[str] = "logs/cognitive_cycle.log") -> logging.Logger:
    """
    Attach console and file handlers to the shared logger once.

    Args:
        level: Logging level name
        log_file: Path of the log file, or None for console only

    Returns:
        The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    # Stream Handler (Console)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def get_logger(enabled: bool = True):
    """Return the shared logger, or a DummyLogger when logging is disabled."""
    if not enabled:
        return DummyLogger()
    return logging.getLogger(LOGGER_NAME)
