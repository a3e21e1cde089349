# fsm_compiler/utils/logging_setup.py

import logging
import sys
import time
from enum import Enum
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "fsm_compiler"


class LogLevel(Enum):
    """Log levels selectable from the command line."""
    DEBUG = (logging.DEBUG, "debug")
    INFO = (logging.INFO, "info")
    WARNING = (logging.WARNING, "warning")
    ERROR = (logging.ERROR, "error")

    def __init__(self, level: int, label: str):
        self.level = level
        self.label = label


class PlainTextFormatter(logging.Formatter):
    """
    Formats records as ``[HH:MM:SS.mmm] LEVEL   [logger] message`` for the console.
    """
    def format(self, record: logging.LogRecord) -> str:
        timestamp = time.strftime('%H:%M:%S', time.localtime(record.created))
        timestamp = f"{timestamp}.{int(record.msecs):03d}"
        text = f"[{timestamp}] {record.levelname:<7} [{record.name}] {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(level: LogLevel = LogLevel.WARNING, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Installs one console handler on the package logger. Calling it again
    replaces the handler instead of adding a second one.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if getattr(handler, '_fsmc_console', False):
            package_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(PlainTextFormatter())
    console_handler.setLevel(level.level)
    console_handler._fsmc_console = True
    package_logger.addHandler(console_handler)
    package_logger.setLevel(level.level)

    logger.debug(f"Console logging configured at level {level.label}.")
    return console_handler
