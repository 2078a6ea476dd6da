# =============================================================================
# tests/unit/test_errors.py
# Unit Tests for the error hierarchy, handlers and ServiceResult
# =============================================================================

import logging

import pytest

from demonlist_core.errors import (
    ConfigurationError,
    DemonListError,
    DomainValidationError,
    LevelNotFoundError,
    RemoteTransportError,
    error_boundary,
    handle_error,
    safe_execute,
)
from demonlist_core.services.base_service import BaseService, ServiceResult


class TestHierarchy:

    def test_domain_errors_share_base(self):
        err = LevelNotFoundError("level_x")

        assert isinstance(err, DomainValidationError)
        assert isinstance(err, DemonListError)
        assert err.to_dict() == {
            "error_type": "LevelNotFoundError",
            "code": "DOMAIN_004",
            "message": "Referenced level not found",
            "details": {"field": "level_id", "value": "level_x"},
            "recoverable": True,
        }

    def test_str_includes_code(self):
        assert str(RemoteTransportError("offline")).startswith("[SYNC_001] offline")


class TestHandlers:

    def test_handle_error_returns_user_message(self):
        assert handle_error(DomainValidationError("Bad input"), log_error=False) == "Bad input"

    def test_handle_error_logs_structured_context(self, caplog):
        with caplog.at_level(logging.INFO, logger="demonlist_core.errors.handlers"):
            handle_error(DomainValidationError("Bad input", field="percent"))

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.error["code"] == "DOMAIN_001"
        assert record.error["details"]["field"] == "percent"

    def test_unrecoverable_message(self):
        message = handle_error(ConfigurationError("No key"), log_error=False)

        assert message.startswith("Critical Error")

    def test_safe_execute_returns_default(self):
        def boom():
            raise RuntimeError("boom")

        assert safe_execute(boom, default=[]) == []

    def test_safe_execute_reraise(self):
        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            safe_execute(boom, reraise=True)

    def test_error_boundary_logs_and_returns_default(self, caplog):
        @error_boundary(default_return=False, error_message="Push failed")
        def push():
            raise RemoteTransportError("timeout")

        with caplog.at_level(logging.WARNING):
            assert push() is False
        assert "Push failed" in caplog.text


class TestServiceRun:

    @pytest.fixture
    def service(self, data):
        class Dummy(BaseService):
            pass
        return Dummy(data)

    def test_success(self, service):
        result = service.run("Adding", lambda a, b: a + b, 2, 3)

        assert result
        assert result.data == 5

    def test_domain_error_becomes_failed_result(self, service):
        def reject():
            raise DomainValidationError("Nope", field="x")

        result = service.run("Rejecting", reject)

        assert not result
        assert result.error == "Nope"
        assert result.error_code == "DOMAIN_001"
        assert result.metadata == {"field": "x"}

    def test_unexpected_error_becomes_failed_result(self, service):
        def crash():
            raise KeyError("k")

        result = service.run("Crashing", crash)

        assert result.error_code == "EXCEPTION"

    def test_result_constructors(self):
        assert ServiceResult.ok(1).success
        assert ServiceResult.fail("x", error_code="E").error_code == "E"
