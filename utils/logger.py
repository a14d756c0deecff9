"""
Logging Module

This module provides a colourised console formatter and helpers for
creating module loggers and attaching a file handler at startup.
"""

import logging
from typing import Optional

ROOT_LOGGER_NAME = "meme_studio"


class CustomFormatter(logging.Formatter):
    """
    A custom formatter for logging messages with different log levels.

    Each level is wrapped in its own ANSI colour so warnings and errors
    stand out on the console.

    Usage:
        formatter = CustomFormatter()
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    fmt = '[%(levelname)s] %(asctime)s - %(name)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + fmt + reset,
        logging.INFO: grey + fmt + reset,
        logging.WARNING: yellow + fmt + reset,
        logging.ERROR: red + fmt + reset,
        logging.CRITICAL: bold_red + fmt + reset
    }

    def format(self, record):
        """
        Formats the log record based on its log level.

        Args:
            record (logging.LogRecord): The log record to be formatted.

        Returns:
            str: The formatted log message.
        """
        log_fmt = self.FORMATS.get(record.levelno, self.fmt)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        console = logging.StreamHandler()
        console.setLevel(logging.DEBUG)
        console.setFormatter(CustomFormatter())
        root.addHandler(console)
        root.setLevel(logging.INFO)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger nested under the application root logger.

    Args:
        name: Usually the calling module's __name__.

    Returns:
        logging.Logger: A child logger sharing the console handler.
    """
    _root_logger()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_file_logging(log_file: Optional[str], level: int = logging.INFO) -> logging.Logger:
    """
    Set the application log level and optionally mirror output to a file.

    Args:
        log_file: Path of the log file, or None for console only.
        level: Logging level for the application loggers.

    Returns:
        logging.Logger: The configured root application logger.
    """
    root = _root_logger()
    root.setLevel(level)

    if log_file:
        already_attached = any(
            isinstance(h, logging.FileHandler) and h.baseFilename.endswith(log_file)
            for h in root.handlers
        )
        if not already_attached:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(CustomFormatter.fmt))
            root.addHandler(file_handler)

    return root
