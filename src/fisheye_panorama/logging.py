"""Logging configuration helpers."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function} - {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Route renderer logs to stdout and, optionally, to a rotating file.

    Per-frame timings are logged at DEBUG, so ``level="DEBUG"`` is noisy while
    the camera moves.
    """
    logger.remove()
    logger.add(sys.stdout, level=level.upper(), format=CONSOLE_FORMAT)
    if log_file is not None:
        logger.add(
            str(log_file),
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="5 MB",
            retention=3,
            encoding="utf-8",
        )
        logger.debug("Writing log file {}", log_file)
