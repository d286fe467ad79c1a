"""
Logging for CultBot.

Every module asks :func:`get_logger` for its own named logger. Each one
writes INFO and above to the console through prompt_toolkit (colored when
stderr is a terminal) and everything to this run's file in ``logs/``.
Console verbosity can be raised with ``CULTBOT_LOG_LEVEL=DEBUG``.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR = Path(os.getenv("CULTBOT_LOGS_DIR", Path(__file__).parents[3] / "logs")).resolve()
CONSOLE_LEVEL = logging.getLevelName(os.getenv("CULTBOT_LOG_LEVEL", "INFO").upper())

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_NAME_FORMAT = "%Y-%m-%d_%H-%M-%S"

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
RESET = "\033[0m"

# discord.py's gateway chatter and aiohttp's connection logs drown out the bot's own lines
QUIET_LIBRARIES = ("discord", "websockets", "aiohttp", "aiosqlite", "asyncio")

_session_log: Path | None = None


class LevelColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}{RESET}" if color else text


class PromptToolkitHandler(logging.Handler):
    """Console handler printing through prompt_toolkit so ANSI colors render on every terminal."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def _console_formatter() -> logging.Formatter:
    if sys.stderr is not None and sys.stderr.isatty():
        return LevelColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def session_log_path() -> Path:
    """File shared by every logger of this run, named after the start time."""
    global _session_log
    if _session_log is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        _session_log = LOGS_DIR / f"cultbot_{datetime.now().strftime(FILE_NAME_FORMAT)}.log"
    return _session_log


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger called ``name``, attaching the console and file handlers
    the first time it is requested.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = PromptToolkitHandler()
    console.setLevel(CONSOLE_LEVEL if isinstance(CONSOLE_LEVEL, int) else logging.INFO)
    console.setFormatter(_console_formatter())
    logger.addHandler(console)

    log_file = RotatingFileHandler(session_log_path(), maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    log_file.setLevel(logging.DEBUG)
    log_file.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(log_file)

    return logger


def log_uncaught(exc_type, exc_value, exc_traceback) -> None:
    """``sys.excepthook`` replacement; Ctrl+C keeps the default behavior."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    get_logger("cultbot").critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


for _name in QUIET_LIBRARIES:
    logging.getLogger(_name).setLevel(logging.ERROR)

sys.excepthook = log_uncaught
