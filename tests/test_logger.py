"""
Unit tests for yandex_diskfs.logger module.

Tests cover:
- FileHandler creation when file is specified
- StreamHandler creation when console=True
- Log level setting
- Log format (timestamp, level, thread name, logger name)
- urllib3 and google.auth noise suppressed below INFO
- Handlers from an earlier setup are closed
"""

import logging
import sys
import threading
from pathlib import Path

import pytest

from yandex_diskfs.config import LogConfig
from yandex_diskfs.logger import LOG_FORMAT, setup_logging


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Restores the root logger after each test."""
    root_logger = logging.getLogger()
    saved_level = root_logger.level
    saved_handlers = list(root_logger.handlers)
    yield
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)


def _stream_handlers(root_logger):
    return [
        h
        for h in root_logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLoggingHandlers:
    """Tests for handler creation."""

    def test_file_handler_created_when_file_specified(self, tmp_path: Path):
        """A FileHandler in append mode and UTF-8 is added for config.file."""
        log_file = tmp_path / "yandex.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        root_logger = logging.getLogger()
        file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]

        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == log_file
        assert file_handlers[0].mode == "a"
        assert file_handlers[0].encoding == "utf-8"
        assert _stream_handlers(root_logger) == []

    def test_no_file_handler_when_file_empty(self):
        setup_logging(LogConfig(level="INFO", file="", console=True))

        root_logger = logging.getLogger()
        assert not any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)
        assert len(_stream_handlers(root_logger)) == 1

    def test_console_handler_uses_stderr(self, tmp_path: Path):
        setup_logging(LogConfig(level="INFO", file=str(tmp_path / "x.log"), console=True))

        handlers = _stream_handlers(logging.getLogger())
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr

    def test_parent_directories_created(self, tmp_path: Path):
        nested = tmp_path / "logs" / "yandex" / "diskfs.log"
        setup_logging(LogConfig(level="INFO", file=str(nested), console=False))

        assert nested.parent.exists()

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path: Path):
        """Calling setup_logging twice replaces the handlers."""
        config = LogConfig(level="INFO", file=str(tmp_path / "x.log"), console=True)

        setup_logging(config)
        setup_logging(config)

        assert len(logging.getLogger().handlers) == 2

    def test_repeated_setup_closes_previous_file(self, tmp_path: Path):
        """The file opened by an earlier call is closed, not leaked."""
        setup_logging(LogConfig(level="INFO", file=str(tmp_path / "a.log"), console=False))
        first = logging.getLogger().handlers[0]

        setup_logging(LogConfig(level="INFO", file=str(tmp_path / "b.log"), console=False))

        assert first.stream is None
        assert first not in logging.getLogger().handlers


class TestSetupLoggingLevel:
    """Tests for log level setting."""

    @pytest.mark.parametrize(
        "level_str,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("info", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("NOT_A_LEVEL", logging.INFO),
        ],
    )
    def test_level_from_config(self, level_str: str, expected_level: int):
        setup_logging(LogConfig(level=level_str, file="", console=True))

        root_logger = logging.getLogger()
        assert root_logger.level == expected_level
        for handler in root_logger.handlers:
            assert handler.level == expected_level

    def test_urllib3_kept_at_info_when_debugging(self):
        """Debug logging does not turn on per-connection urllib3 messages."""
        setup_logging(LogConfig(level="DEBUG", file="", console=True))
        assert logging.getLogger("urllib3").level == logging.INFO

    def test_urllib3_follows_higher_level(self):
        setup_logging(LogConfig(level="ERROR", file="", console=True))
        assert logging.getLogger("urllib3").level == logging.ERROR

    def test_google_auth_quieted(self):
        setup_logging(LogConfig(level="DEBUG", file="", console=True))
        assert logging.getLogger("google.auth").level == logging.INFO


class TestSetupLoggingFormat:
    """Tests for the log line format."""

    def test_format_constant(self):
        assert "%(asctime)s" in LOG_FORMAT
        assert "%(levelname)s" in LOG_FORMAT
        assert "%(threadName)s" in LOG_FORMAT
        assert "%(name)s" in LOG_FORMAT
        assert "%(message)s" in LOG_FORMAT

    def test_messages_carry_level_and_thread(self, tmp_path: Path):
        """Records from a named worker thread show that thread's name."""
        log_file = tmp_path / "yandex.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        worker = threading.Thread(
            target=lambda: logging.getLogger("yandex_diskfs.filesystem").warning("page failed"),
            name="list-yandex",
        )
        worker.start()
        worker.join()
        logging.getLogger("yandex_diskfs").info("listing started")
        _flush()

        content = log_file.read_text(encoding="utf-8")
        assert "WARNING - list-yandex - yandex_diskfs.filesystem - page failed" in content
        assert "INFO - MainThread - yandex_diskfs - listing started" in content

    def test_messages_below_level_filtered(self, tmp_path: Path):
        log_file = tmp_path / "filtered.log"
        setup_logging(LogConfig(level="WARNING", file=str(log_file), console=False))

        logger = logging.getLogger("yandex_diskfs.test")
        logger.info("hidden message")
        logger.error("shown message")
        _flush()

        content = log_file.read_text(encoding="utf-8")
        assert "hidden message" not in content
        assert "shown message" in content

    def test_appends_to_existing_file(self, tmp_path: Path):
        log_file = tmp_path / "existing.log"
        log_file.write_text("existing content\n", encoding="utf-8")

        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))
        logging.getLogger().info("new log message")
        _flush()

        content = log_file.read_text(encoding="utf-8")
        assert content.startswith("existing content\n")
        assert "new log message" in content
