"""Unit tests for logging setup."""

import logging

from azure_vars.logging_config import setup_logging


class TestLogging:
    def test_silent_without_file(self, no_env_vars):
        assert setup_logging() is None

        logger = logging.getLogger("azure_vars")
        assert logger.propagate is False
        assert all(isinstance(h, logging.NullHandler) for h in logger.handlers)

    def test_writes_to_file(self, tmp_path, no_env_vars):
        log_file = tmp_path / "azure-vars.log"

        assert setup_logging(logging.DEBUG, str(log_file)) == str(log_file)
        logging.getLogger("azure_vars.core").debug("hello from tests")
        for handler in logging.getLogger("azure_vars").handlers:
            handler.flush()

        assert "hello from tests" in log_file.read_text()

    def test_env_var_fallback(self, tmp_path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("AZURE_VARS_LOG", str(log_file))

        assert setup_logging() == str(log_file)

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path, no_env_vars):
        setup_logging(log_file=str(tmp_path / "a.log"))
        setup_logging(log_file=str(tmp_path / "a.log"))

        assert len(logging.getLogger("azure_vars").handlers) == 1
