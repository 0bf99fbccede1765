"""
Logging for modgate.

Every module asks ``get_logger(name)`` for its logger. Records go to the
console through prompt_toolkit (coloured on a terminal, INFO and up) and to a
per-run file under ``logs/`` that rotates by size (everything from DEBUG).
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H-%M-%S"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

NOISY_LOGGERS = ("discord", "discord.gateway", "discord.client", "discord.http", "websockets", "aiohttp", "aiosqlite")

_log_filepath: Path | None = None


class ColorFormatter(logging.Formatter):
    """Wraps each line in the colour of its level; unknown levels stay plain."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, "")
        message = super().format(record)
        return f"{color}{message}{RESET_COLOR}" if color else message


class PromptToolkitHandler(logging.Handler):
    """Console handler printing through prompt_toolkit so output doesn't tear an active prompt."""

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
console_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain_formatter


def get_log_filepath() -> Path:
    """Log file of this run, named after the time it was first requested."""
    global _log_filepath
    if _log_filepath is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        _log_filepath = LOGS_DIR / f"{datetime.now().strftime(DATE_FORMAT)}.log"
    return _log_filepath


def get_logger(logger_name: str) -> logging.Logger:
    """
    Return the modgate logger called ``logger_name``.

    Handlers are attached on the first call only, so asking twice never
    duplicates output. The logger does not propagate to the root logger.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = PromptToolkitHandler(formatter=console_formatter)
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        get_log_filepath(), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(plain_formatter)
    logger.addHandler(file_handler)
    return logger


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught exceptions; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


for _name in NOISY_LOGGERS:
    _noisy = logging.getLogger(_name)
    _noisy.setLevel(logging.ERROR)
    _noisy.propagate = False
    _noisy.handlers = []
