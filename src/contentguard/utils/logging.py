"""
Logging utilities with personal-information redaction.

Provides a logging setup that:
- Masks emails, phone numbers and card numbers in log records
- Supports both console and file output
- Configurable log levels
- Includes timestamps and module names
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from contentguard.redaction import mask_personal_info

if TYPE_CHECKING:
    from contentguard.config import Config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class RedactionFilter(logging.Filter):
    """
    Logging filter that masks personal information.

    Moderated content regularly ends up in log arguments (reasons, matched
    text, summaries); the values the content filter looks for must not be
    written to disk in the clear.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter a log record, masking personal information.

        Args:
            record: The log record to filter

        Returns:
            bool: Always True (we modify, not filter out)
        """
        if isinstance(record.msg, str):
            record.msg = mask_personal_info(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: mask_personal_info(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    mask_personal_info(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colors the whole line by level.

    Colors:
    - DEBUG: Cyan
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Red background
    """

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{message}{self.RESET}" if color else message


def setup_logging(config: Config) -> logging.Logger:
    """
    Set up logging for contentguard.

    Configures:
    - Console handler with colored output
    - Optional file handler
    - Personal-information redaction on all handlers

    Args:
        config: Application configuration with log settings

    Returns:
        logging.Logger: The configured package logger
    """
    logger = logging.getLogger("contentguard")
    logger.setLevel(getattr(logging, config.log_level, logging.INFO))
    logger.handlers.clear()

    redaction = RedactionFilter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT))
    console_handler.addFilter(redaction)
    logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.addFilter(redaction)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized with level %s", config.log_level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (usually __name__)

    Returns:
        logging.Logger: Logger under the contentguard namespace
    """
    if not name.startswith("contentguard"):
        name = f"contentguard.{name}"
    return logging.getLogger(name)
