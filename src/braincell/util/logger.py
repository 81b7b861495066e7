"""
Logging for Braincell.

Every module asks for ``get_logger("<module>")`` and receives a child of the
``braincell`` logger. Handlers live only on that parent and are attached the
first time any logger is requested:

- a prompt_toolkit console handler (INFO and up), coloured on a TTY, so log
  lines are drawn above the operator prompt instead of through it
- a rotating file handler (DEBUG and up) writing one file per session under
  ``logs/``
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

ROOT_LOGGER_NAME = "braincell"

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H-%M-%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

LEVEL_COLOURS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET = "\033[0m"

NOISY_LOGGERS = ("discord", "discord.gateway", "discord.client", "discord.http", "websockets", "aiohttp")

_session_log: Path | None = None


class ColorFormatter(logging.Formatter):
    """Formatter that paints the whole line in the colour of its level."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        colour = LEVEL_COLOURS.get(record.levelno)
        return f"{colour}{text}{RESET}" if colour else text


class PromptToolkitHandler(logging.Handler):
    """Console handler that prints through prompt_toolkit."""

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter is not None:
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


def logs_dir() -> Path:
    """``$BRAINCELL_HOME/logs`` when the variable is set, else ``logs/`` at the project root."""
    home = os.getenv("BRAINCELL_HOME")
    base = Path(home) if home else Path(__file__).resolve().parents[3]
    return base / "logs"


def session_log_path() -> Path:
    """The file this process logs to, chosen once per session."""
    global _session_log
    if _session_log is None:
        directory = logs_dir()
        directory.mkdir(parents=True, exist_ok=True)
        _session_log = directory / f"{datetime.now().strftime(DATE_FORMAT)}.log"
    return _session_log


def configure_logging() -> logging.Logger:
    """Attach the console and file handlers to the ``braincell`` logger once and return it."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    root.setLevel(logging.DEBUG)
    root.propagate = False

    plain = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = PromptToolkitHandler(ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain)
    console.setLevel(logging.INFO)
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        session_log_path(),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(plain)
    root.addHandler(file_handler)

    quiet_library_loggers()
    return root


def quiet_library_loggers() -> None:
    """Only let errors through from chatty third-party loggers."""
    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.ERROR)
        noisy.propagate = False
        noisy.handlers = []


def get_logger(name: str) -> logging.Logger:
    """Return the ``braincell.<name>`` logger, configuring logging on first use."""
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def handle_exception(exc_type, exc_value, exc_traceback) -> None:
    """``sys.excepthook`` that logs uncaught exceptions; Ctrl+C keeps its default behaviour."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logging.getLogger(ROOT_LOGGER_NAME).critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))
