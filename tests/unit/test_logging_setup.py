"""Unit tests for logging setup system"""

import pytest
import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

from docrouter.logging_setup import (
    ColoredFormatter, setup_logging, get_logger, log_performance, setup_cli_logging
)
from docrouter.config import RouterConfig, LoggingConfig


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_config(temp_dir):
    """Create mock router config for testing"""
    config = Mock(spec=RouterConfig)
    config.logging = LoggingConfig(
        level="INFO",
        file_enabled=True,
        console_enabled=True,
        max_file_size=1024*1024,
        backup_count=3
    )
    config.logs_path = temp_dir / "logs"
    return config


@pytest.fixture(autouse=True)
def reset_docrouter_logger():
    """Leave no handlers behind on the shared logger"""
    yield
    logger = logging.getLogger('docrouter')
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


def _record(level=logging.INFO, msg="Test message"):
    return logging.LogRecord(
        name="test", level=level, pathname="test.py", lineno=1,
        msg=msg, args=(), exc_info=None
    )


class TestColoredFormatter:
    """Test ColoredFormatter functionality"""

    def test_colored_formatting(self):
        formatter = ColoredFormatter("%(levelname)s - %(message)s")
        formatted = formatter.format(_record())

        assert '\033[32m' in formatted
        assert '\033[0m' in formatted
        assert "Test message" in formatted

    def test_record_restored(self):
        """Other handlers see the plain level name"""
        record = _record(logging.ERROR)
        ColoredFormatter("%(levelname)s").format(record)
        assert record.levelname == "ERROR"


class TestSetupLogging:
    """Test setup_logging"""

    def test_file_and_console_handlers(self, mock_config, temp_dir):
        logger = setup_logging(mock_config)

        assert logger.name == 'docrouter'
        assert logger.level == logging.INFO
        assert logger.propagate is False
        assert len(logger.handlers) == 3
        assert (temp_dir / "logs" / "docrouter.log").exists()
        assert (temp_dir / "logs" / "docrouter_errors.log").exists()

    def test_console_only(self, mock_config):
        mock_config.logging.file_enabled = False
        logger = setup_logging(mock_config)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ColoredFormatter)

    def test_repeated_setup_replaces_handlers(self, mock_config):
        setup_logging(mock_config)
        logger = setup_logging(mock_config)
        assert len(logger.handlers) == 3

    def test_error_log_only_gets_errors(self, mock_config, temp_dir):
        mock_config.logging.console_enabled = False
        logger = setup_logging(mock_config)

        get_logger("docrouter.routing").info("routed a file")
        get_logger("docrouter.routing").error("backend exploded")
        for handler in logger.handlers:
            handler.flush()

        errors = (temp_dir / "logs" / "docrouter_errors.log").read_text(encoding="utf-8")
        general = (temp_dir / "logs" / "docrouter.log").read_text(encoding="utf-8")
        assert "backend exploded" in errors
        assert "routed a file" not in errors
        assert "routed a file" in general


class TestCliLogging:
    """Test setup_cli_logging"""

    def test_verbose_enables_debug_console(self, mock_config):
        mock_config.logging.console_enabled = False
        logger = setup_cli_logging(mock_config, verbose=True)

        assert logger.level == logging.DEBUG
        assert mock_config.logging.console_enabled is True

    def test_unwritable_log_dir_disables_file_logging(self, mock_config, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        mock_config.logs_path = blocker / "logs"

        logger = setup_cli_logging(mock_config)

        assert mock_config.logging.file_enabled is False
        assert all(not isinstance(h, logging.FileHandler) for h in logger.handlers)


class TestPerformanceLogging:
    """Test log_performance"""

    def test_success(self):
        logger = Mock(spec=logging.Logger)
        with log_performance("routing", logger):
            pass

        logger.debug.assert_called_once_with("Starting routing")
        assert "Completed routing" in logger.info.call_args[0][0]

    def test_failure(self):
        logger = Mock(spec=logging.Logger)
        with pytest.raises(RuntimeError):
            with log_performance("routing", logger):
                raise RuntimeError("boom")

        assert "Failed routing" in logger.warning.call_args[0][0]

    def test_default_logger(self):
        with patch("docrouter.logging_setup.get_logger") as mock_get_logger:
            with log_performance("routing"):
                pass
        mock_get_logger.assert_called_once_with()
