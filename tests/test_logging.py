"""
Tests for logging configuration module.
"""

import logging
import sys

import pytest

from actm.logging_config import ColoredFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger = logging.getLogger("actm")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class TestSetupLogging:
    """Test logging setup and configuration."""

    def test_setup_logging_default(self, monkeypatch):
        """Test default logging setup."""
        monkeypatch.delenv("ACTM_DEBUG", raising=False)
        logger = setup_logging()
        assert logger.name == "actm"
        assert logger.level == logging.INFO

    def test_setup_logging_verbose(self):
        """Test verbose logging enables DEBUG level."""
        logger = setup_logging(verbose=True)
        assert logger.level == logging.DEBUG

    def test_setup_logging_env_debug(self, monkeypatch):
        """ACTM_DEBUG=1 forces DEBUG level."""
        monkeypatch.setenv("ACTM_DEBUG", "1")
        logger = setup_logging()
        assert logger.level == logging.DEBUG

    def test_setup_logging_console_on_stderr(self, monkeypatch):
        """The single console handler writes to stderr."""
        monkeypatch.delenv("ACTM_DEBUG", raising=False)
        logger = setup_logging()
        [handler] = logger.handlers
        assert handler.stream is sys.stderr
        assert handler.level == logging.INFO
        assert logger.propagate is False

    def test_setup_logging_file_gets_debug(self, tmp_path, monkeypatch):
        """The log file receives DEBUG records the console hides."""
        monkeypatch.delenv("ACTM_DEBUG", raising=False)
        log_file = tmp_path / "actm.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("actm.resolver").debug("cache miss")

        assert "cache miss" in log_file.read_text()

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging to a file in a new directory."""
        log_file = tmp_path / "subdir" / "actm.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("actm.updater").info("Test message")

        assert log_file.exists()
        assert "Test message" in log_file.read_text()

    def test_setup_logging_no_duplicate_handlers(self):
        """Repeated setup replaces handlers."""
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_get_logger(self):
        """get_logger returns the configured instance."""
        logger = setup_logging()
        assert get_logger() is logger

    def test_get_logger_configures_on_first_use(self):
        """get_logger installs default handlers when none exist."""
        assert get_logger().handlers


class TestColoredFormatter:
    """Tests for the console formatter."""

    def _record(self, level=logging.WARNING):
        return logging.LogRecord("actm", level, __file__, 1, "hello", None, None)

    def test_plain(self):
        """Without colors the level name is used as is."""
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=False)
        assert formatter.format(self._record()) == "WARNING hello"

    def test_colored(self):
        """With colors the level carries ANSI codes."""
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=True)
        output = formatter.format(self._record())
        assert "\033[33m" in output
        assert output.endswith("hello")
