"""
Logging setup for posterkit.

Every module logs through the ``posterkit`` logger created here. It has two
handlers:

- a DEBUG file handler writing one timestamped file per process under
  ``LOG_DIR`` (default ``logs/``; set ``LOG_DIR=`` to disable file output)
- a console handler at ``LOG_LEVEL`` (default ``INFO``)
"""
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "posterkit"

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Marks handlers owned by setup_logger so a second call replaces only those
_HANDLER_TAG = "_posterkit_handler"


def resolve_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    """Turn ``"debug"``, ``"WARNING"``, ``10`` or ``None`` into a logging level."""
    if isinstance(value, int):
        return value
    if not value:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def log_file_path(log_dir: Path) -> Path:
    return log_dir / f"posterkit_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"


def _tag(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def setup_logger(
    name: str = LOGGER_NAME,
    level: Union[str, int, None] = None,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Attach the posterkit file and console handlers to ``name``.

    Safe to call more than once: handlers from an earlier call are closed and
    replaced, handlers added by anyone else are left alone.

    Args:
        name: Logger name
        level: Console level; falls back to ``LOG_LEVEL``
        log_dir: Directory for the file log; falls back to ``LOG_DIR``.
            An empty string disables the file handler.
    """
    console_level = resolve_level(level if level is not None else os.getenv("LOG_LEVEL"))
    directory = os.getenv("LOG_DIR", "logs") if log_dir is None else log_dir

    target = logging.getLogger(name)
    target.setLevel(logging.DEBUG)

    for handler in [h for h in target.handlers if getattr(h, _HANDLER_TAG, False)]:
        target.removeHandler(handler)
        handler.close()

    if directory:
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path(path), encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        target.addHandler(_tag(file_handler))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    target.addHandler(_tag(console_handler))

    return target


def active_log_file(target: logging.Logger) -> Optional[Path]:
    """Path of the file log attached by setup_logger, if any."""
    for handler in target.handlers:
        if getattr(handler, _HANDLER_TAG, False) and isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


logger = setup_logger()
