import logging
import os
from unittest.mock import patch

import pytest
from rich.logging import RichHandler

from amo_submit import log_utils

pytestmark = [pytest.mark.unit]


class TestLogUtils:
    """Test suite for log_utils module."""

    def setup_method(self):
        """Reset logger state before each test."""
        for handler in log_utils.logger.handlers[:]:
            log_utils.logger.removeHandler(handler)
            handler.close()

        log_utils._file_handler = None

        log_utils._initialize_logger()

    def teardown_method(self):
        log_utils._initialize_logger()
        log_utils._file_handler = None

    def test_logger_initialization(self):
        assert log_utils.logger.name == "amo_submit"
        assert not log_utils.logger.propagate
        assert len(log_utils.logger.handlers) == 1
        assert isinstance(log_utils.logger.handlers[0], RichHandler)

    def test_logger_initialization_with_env_var(self):
        with patch.dict(os.environ, {"AMO_SUBMIT_LOG_LEVEL": "DEBUG"}):
            log_utils._initialize_logger()
            assert log_utils.logger.level == logging.DEBUG
            assert log_utils.logger.handlers[0].level == logging.DEBUG

    def test_logger_initialization_with_invalid_env_var(self):
        with patch.dict(os.environ, {"AMO_SUBMIT_LOG_LEVEL": "LOUD"}):
            log_utils._initialize_logger()
            assert log_utils.logger.level == logging.INFO

    def test_console_handler_does_not_render_markup(self):
        # Validation reports contain square brackets
        assert log_utils.logger.handlers[0].markup is False

    def test_set_log_level_valid(self):
        log_utils.set_log_level("debug")
        assert log_utils.logger.level == logging.DEBUG

        log_utils.set_log_level("WARNING")
        assert log_utils.logger.level == logging.WARNING
        assert log_utils.logger.handlers[0].level == logging.WARNING

    def test_set_log_level_invalid(self):
        original_level = log_utils.logger.level
        log_utils.set_log_level("INVALID_LEVEL")
        assert log_utils.logger.level == original_level

    def test_console_formatter_stays_message_only(self):
        log_utils.set_log_level("DEBUG")
        assert log_utils.logger.handlers[0].formatter._fmt == "%(message)s"

    def test_add_file_logging(self, tmp_path):
        log_file = log_utils.add_file_logging(tmp_path, "INFO")

        assert log_file == tmp_path / "amo-submit.log"
        assert log_file.exists()
        assert len(log_utils.logger.handlers) == 2
        assert log_utils._file_handler in log_utils.logger.handlers

    def test_add_file_logging_replaces_existing(self, tmp_path):
        log_utils.add_file_logging(tmp_path, "INFO")
        first_handler = log_utils._file_handler

        log_utils.add_file_logging(tmp_path, "DEBUG")

        assert log_utils._file_handler is not first_handler
        assert first_handler not in log_utils.logger.handlers
        assert len(log_utils.logger.handlers) == 2
        assert log_utils._file_handler.level == logging.DEBUG

    def test_add_file_logging_invalid_level_defaults_to_info(self, tmp_path):
        log_utils.add_file_logging(tmp_path, "CHATTY")

        assert log_utils._file_handler.level == logging.INFO

    def test_file_logging_creates_directory(self, tmp_path):
        log_dir = tmp_path / "nested" / "log" / "dir"

        log_utils.add_file_logging(log_dir, "INFO")

        assert (log_dir / "amo-submit.log").exists()

    def test_rotating_file_handler_configuration(self, tmp_path):
        log_utils.add_file_logging(tmp_path, "INFO")

        handler = log_utils._file_handler
        assert handler.maxBytes == 10 * 1024 * 1024
        assert handler.backupCount == 5
        assert handler.encoding == "utf-8"

    def test_file_formatter_follows_level(self, tmp_path):
        log_utils.add_file_logging(tmp_path, "INFO")
        assert "%(name)s" not in log_utils._file_handler.formatter._fmt

        log_utils.set_log_level("DEBUG")
        assert "%(name)s" in log_utils._file_handler.formatter._fmt

    def test_messages_reach_the_file(self, tmp_path):
        log_file = log_utils.add_file_logging(tmp_path, "INFO")

        log_utils.logger.info("Fetching URL: https://addons.example.com/")
        log_utils._file_handler.flush()

        assert "Fetching URL: https://addons.example.com/" in log_file.read_text(
            encoding="utf-8"
        )
