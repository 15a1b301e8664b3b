# ABOUTME: Tests for logging configuration and structured logger helpers
# ABOUTME: Validates dual-mode loguru setup, third-party suppression and context binding

import logging
import os
from unittest.mock import patch

import pytest

from wiki_harvest.utils.logging import (
    LoggingMode,
    configure_logging,
    detect_logging_mode,
    get_logger,
    get_logging_status,
    log_api_call,
    with_entry_context,
)
from wiki_harvest.utils.logging.config import THIRD_PARTY_LOGGERS


class TestDetectLoggingMode:
    """Mode comes from WIKI_HARVEST_LOG_MODE, falling back to TTY detection."""

    def test_env_value_wins(self):
        with patch.dict(os.environ, {"WIKI_HARVEST_LOG_MODE": "production"}):
            assert detect_logging_mode() == LoggingMode.PRODUCTION

    def test_unknown_env_value_falls_back_to_tty(self):
        with (
            patch.dict(os.environ, {"WIKI_HARVEST_LOG_MODE": "invalid"}),
            patch("sys.stdout.isatty", return_value=True),
        ):
            assert detect_logging_mode() == LoggingMode.INTERACTIVE

    def test_non_tty_means_production(self):
        with patch.dict(os.environ, {}, clear=True), patch("sys.stdout.isatty", return_value=False):
            assert detect_logging_mode() == LoggingMode.PRODUCTION


class TestConfigureLogging:
    """Sinks and third-party levels after configure_logging."""

    def teardown_method(self):
        for name in ["", *THIRD_PARTY_LOGGERS, "py.warnings"]:
            stdlib_logger = logging.getLogger(name)
            stdlib_logger.handlers.clear()
            stdlib_logger.setLevel(logging.NOTSET)
        logging.captureWarnings(False)

    def test_configure_interactive_mode(self, tmp_path):
        log_dir = tmp_path / "logs"

        configure_logging(mode=LoggingMode.INTERACTIVE, log_level="INFO", log_dir=log_dir)

        assert log_dir.exists()
        for logger_name in THIRD_PARTY_LOGGERS:
            assert logging.getLogger(logger_name).level == logging.WARNING

    def test_configure_production_mode_sets_level(self):
        configure_logging(mode=LoggingMode.PRODUCTION, log_level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING


class TestGetLoggingStatus:
    """The dictionary behind the logging-status command."""

    def test_interactive_status(self, tmp_path):
        with patch("wiki_harvest.utils.logging.config.detect_logging_mode", return_value=LoggingMode.INTERACTIVE):
            status = get_logging_status(log_dir=tmp_path)

        assert status["mode"] == LoggingMode.INTERACTIVE
        assert status["log_directory"] == str(tmp_path.absolute())
        assert status["log_files"]["main"].endswith("wiki-harvest.log")
        assert "httpx" in status["third_party_suppressed"]

    def test_production_status(self, tmp_path):
        with patch("wiki_harvest.utils.logging.config.detect_logging_mode", return_value=LoggingMode.PRODUCTION):
            status = get_logging_status(log_dir=tmp_path / "missing")

        assert status["log_directory"] is None
        assert all(path is None for path in status["log_files"].values())


class TestLoggerHelpers:
    """Test context binding and the API call decorator."""

    def test_get_logger_binds(self):
        logger = get_logger("wiki_harvest.tests")
        assert logger.bind(entry_id="anby") is not None

    def test_entry_context_uses_given_logger(self):
        base = get_logger("wiki_harvest.tests")
        with with_entry_context("anby", logger=base, attempt=1) as bound:
            assert bound is not None

    @pytest.mark.asyncio
    async def test_log_api_call_passes_result_and_errors(self):
        @log_api_call("test_api")
        async def succeed(value):
            return value * 2

        @log_api_call("test_api")
        async def fail():
            raise RuntimeError("down")

        assert await succeed(21) == 42
        with pytest.raises(RuntimeError, match="down"):
            await fail()
