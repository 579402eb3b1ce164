"""Tests for environment settings and logging setup."""

import logging
from pathlib import Path

import pytest

from invoice_manager.config import DEFAULT_API_URL, DEFAULT_TIMEOUT, Settings
from invoice_manager.logging_config import LOGGER_NAME, configure_logging, reset_logging


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.api_url == DEFAULT_API_URL
        assert settings.output_dir == Path(".")
        assert settings.timeout == DEFAULT_TIMEOUT
        assert settings.log_level == "WARNING"

    def test_overrides(self):
        settings = Settings.from_env({
            "INVOICE_API_URL": "https://billing.example.com/api/invoices/",
            "INVOICE_OUTPUT_DIR": "/tmp/pdfs",
            "INVOICE_HTTP_TIMEOUT": "2.5",
            "INVOICE_LOG_LEVEL": "debug",
        })
        assert settings.api_url == "https://billing.example.com/api/invoices"
        assert settings.output_dir == Path("/tmp/pdfs")
        assert settings.timeout == 2.5
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["soon", "0", "-1"])
    def test_bad_timeout(self, value):
        with pytest.raises(ValueError, match="INVOICE_HTTP_TIMEOUT"):
            Settings.from_env({"INVOICE_HTTP_TIMEOUT": value})


class TestLogging:
    def teardown_method(self):
        reset_logging()

    def test_single_handler(self):
        logger = configure_logging("INFO")
        configure_logging("DEBUG")
        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_warning(self):
        assert configure_logging("chatty").level == logging.WARNING

    def test_reset(self):
        configure_logging("INFO")
        reset_logging()
        assert logging.getLogger(LOGGER_NAME).handlers == []
