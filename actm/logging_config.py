"""
Logging setup for the tool manager.

All package loggers hang off ``actm``. Console records go to stderr so that
``--json`` output on stdout stays parseable; ``--log-file`` adds a DEBUG-level
file sink. ``ACTM_DEBUG=1`` forces DEBUG everywhere.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "actm"
CONSOLE_FORMAT = "%(levelname_colored)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def debug_forced() -> bool:
    return os.environ.get("ACTM_DEBUG", "0") == "1"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``actm`` logger; safe to call repeatedly.

    Args:
        verbose: Show DEBUG records on the console
        log_file: Also write every record to this file (parent dirs created)

    Returns:
        The configured ``actm`` logger
    """
    level = logging.DEBUG if verbose or debug_forced() else logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_colors=sys.stderr.isatty()))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        # File sink sees DEBUG even when the console does not
        logger.setLevel(logging.DEBUG)

    return logger


def get_logger() -> logging.Logger:
    """The ``actm`` logger, configured with defaults on first use."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        setup_logging()
    return logger


class ColoredFormatter(logging.Formatter):
    """Prefixes console records with a colored level marker."""

    LEVEL_STYLES = {
        "DEBUG": ("\033[36m", "🔍"),
        "INFO": ("\033[32m", "✓"),
        "WARNING": ("\033[33m", "⚠️"),
        "ERROR": ("\033[31m", "✗"),
        "CRITICAL": ("\033[1;31m", "🚨"),
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if self.use_colors and record.levelname in self.LEVEL_STYLES:
            color, symbol = self.LEVEL_STYLES[record.levelname]
            record.levelname_colored = f"{color}{symbol} {record.levelname}{self.RESET}"
        else:
            record.levelname_colored = record.levelname
        return super().format(record)
