# =============================================================================
# tests/unit/test_logging.py
# Unit Tests for logging setup
# =============================================================================

import logging
from datetime import date

import pytest

from demonlist_core.errors import DomainValidationError
from demonlist_core.logging import LogContext, get_logger, resolve_level, setup_logging
from demonlist_core.logging import config as log_config


class TestResolveLevel:

    @pytest.mark.parametrize("raw,expected", [
        (logging.DEBUG, logging.DEBUG),
        ("warning", logging.WARNING),
        (" Error ", logging.ERROR),
        ("chatty", logging.INFO),
    ])
    def test_names_and_numbers(self, raw, expected):
        assert resolve_level(raw) == expected

    def test_environment_used_when_no_level_given(self, monkeypatch):
        monkeypatch.setenv("DEMONLIST_LOG_LEVEL", "debug")

        assert resolve_level() == logging.DEBUG

    def test_default_is_info(self, monkeypatch):
        monkeypatch.delenv("DEMONLIST_LOG_LEVEL", raising=False)

        assert resolve_level() == logging.INFO


class TestSetupLogging:

    def test_file_handler_writes_under_log_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(log_config, "LOG_DIR", tmp_path / "logs")

        setup_logging(level=logging.DEBUG, log_to_file=True, log_filename="test.log")
        get_logger("demonlist_core.test").info("hello file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = (tmp_path / "logs" / "test.log").read_text()
        assert "hello file" in text
        assert "| MainThread | demonlist_core.test | INFO |" in text

    def test_daily_file_name(self, tmp_path, monkeypatch):
        monkeypatch.setattr(log_config, "LOG_DIR", tmp_path)

        assert log_config.log_file_path(date(2024, 3, 1)) == tmp_path / "demonlist_2024-03-01.log"

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEMONLIST_LOG_LEVEL", "WARNING")

        assert setup_logging() == logging.WARNING
        assert logging.getLogger().level == logging.WARNING

    def test_http_loggers_quieted(self):
        setup_logging(level="INFO")

        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("requests").level == logging.WARNING

    def test_custom_noisy_loggers(self):
        setup_logging(level="INFO", noisy_loggers={"demonlist_core.offline.local_cache": logging.ERROR})

        assert logging.getLogger("demonlist_core.offline.local_cache").level == logging.ERROR
        logging.getLogger("demonlist_core.offline.local_cache").setLevel(logging.NOTSET)


class TestLogContext:

    def test_logs_start_and_completion(self, caplog):
        logger = get_logger("demonlist_core.ctx")

        with caplog.at_level(logging.INFO, logger="demonlist_core.ctx"):
            with LogContext(logger, "Pulling users") as ctx:
                pass

        assert "Pulling users... started" in caplog.text
        assert "Pulling users... completed" in caplog.text
        assert ctx.elapsed_ms >= 0

    def test_custom_level(self, caplog):
        logger = get_logger("demonlist_core.ctx")

        with caplog.at_level(logging.DEBUG, logger="demonlist_core.ctx"):
            with LogContext(logger, "Reading cache", level=logging.DEBUG):
                pass

        assert {r.levelno for r in caplog.records} == {logging.DEBUG}

    def test_failure_logged_and_reraised(self, caplog):
        logger = get_logger("demonlist_core.ctx")

        with caplog.at_level(logging.INFO, logger="demonlist_core.ctx"):
            with pytest.raises(ValueError):
                with LogContext(logger, "Pushing"):
                    raise ValueError("boom")

        failure = caplog.records[-1]
        assert "Pushing... failed" in failure.getMessage()
        assert failure.levelno == logging.ERROR
        assert failure.exc_info is not None

    def test_expected_error_logged_as_refusal(self, caplog):
        logger = get_logger("demonlist_core.ctx")

        with caplog.at_level(logging.INFO, logger="demonlist_core.ctx"):
            with pytest.raises(DomainValidationError):
                with LogContext(logger, "Rejecting", expected=(DomainValidationError,)):
                    raise DomainValidationError("Mods only")

        refusal = caplog.records[-1]
        assert refusal.levelno == logging.INFO
        assert "Rejecting... refused" in refusal.getMessage()
        assert refusal.exc_info is None
