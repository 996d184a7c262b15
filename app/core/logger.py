# app/core/logger.py
import logging
from core.config import settings

logger = logging.getLogger("transcode-pipeline")
logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
logger.propagate = False

_formatter = logging.Formatter(
    fmt="%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)

_console = logging.StreamHandler()
_console.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
_console.setFormatter(_formatter)
logger.addHandler(_console)

if settings.LOG_FILE:
    _file = logging.FileHandler(settings.LOG_FILE)
    _file.setLevel(logging.DEBUG)
    _file.setFormatter(_formatter)
    logger.addHandler(_file)


def use_file_only() -> None:
    """Detach the console handler; used while curses owns the terminal."""
    if settings.LOG_FILE and _console in logger.handlers:
        logger.removeHandler(_console)
