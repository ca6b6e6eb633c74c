"""
Logging setup for the yandex-diskfs command line.

Records carry the thread name, so lines from listing producer threads
("list-<remote>") can be told apart from the caller's own.
"""

import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(name)s - %(message)s"

# Libraries that log every connection or token refresh at DEBUG
QUIET_LOGGERS = ("urllib3", "google.auth")

# Handlers installed by the last setup_logging call
_installed: list[logging.Handler] = []


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(file: str) -> logging.Handler:
    log_path = Path(file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, mode="a", encoding="utf-8")


def setup_logging(config: LogConfig) -> None:
    """
    Replace the root logger's handlers with those named in config.

    A file handler is added when config.file is set and a stderr handler
    when config.console is true. Calling it again closes the handlers a
    previous call opened.
    """
    level = _level(config.level)

    handlers: list[logging.Handler] = []
    if config.file:
        handlers.append(_file_handler(config.file))
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    root_logger = logging.getLogger()
    for old in root_logger.handlers[:]:
        root_logger.removeHandler(old)
    for old in _installed:
        old.close()
    _installed[:] = handlers

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
