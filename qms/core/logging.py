"""
Logging configuration for QMS.

Provides consistent log formatting across all modules.
"""

import logging
import os
import sys
from typing import Dict, Optional

_loggers: Dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _default_level() -> int:
    name = os.environ.get("QMS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger for a module.

    Args:
        name: Logger name (e.g., 'qms.quotations.db', 'qms.rfq.workbook')
        level: Logging level (default: QMS_LOG_LEVEL env var, else INFO)

    Returns:
        Configured logger
    """
    if name in _loggers:
        return _loggers[name]

    if level is None:
        level = _default_level()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    _loggers[name] = logger
    return logger
