"""
Tests for the error taxonomy, exception conversion and the Result type.
"""

import asyncio

import pytest
from unittest.mock import Mock

from alphdata.core.logging_config import create_module_filter
from alphdata.error_handler import ErrorHandler, Result, get_error_handler, safe_execute
from alphdata.exceptions import (
    AlphDataError,
    CorsRestrictedError,
    HistoryUnavailableError,
    InvalidAddressError,
    NotFoundError,
    ParseError,
    UpstreamUnavailableError,
    ValidationError,
    handle_exception,
)

from conftest import ADDRESS


class TestTaxonomy:

    def test_hierarchy(self):
        assert issubclass(InvalidAddressError, ValidationError)
        assert issubclass(CorsRestrictedError, UpstreamUnavailableError)
        assert issubclass(HistoryUnavailableError, AlphDataError)

    def test_to_dict(self):
        cause = ValueError("bad")
        error = ParseError("token list", "missing field", cause=cause)

        data = error.to_dict()

        assert data["error_type"] == "ParseError"
        assert data["error_code"] == "ParseError"
        assert data["message"] == "Malformed token list: missing field"
        assert data["cause"] == "bad"

    def test_history_unavailable_context(self):
        error = HistoryUnavailableError(ADDRESS, 30)

        assert error.context == {"address": ADDRESS, "days": 30}
        assert ADDRESS[:8] in error.message


class TestHandleException:

    @pytest.mark.parametrize("raw,expected", [
        (asyncio.TimeoutError(), UpstreamUnavailableError),
        (ConnectionError("reset"), UpstreamUnavailableError),
        (KeyError("id"), ParseError),
        (ValueError("nope"), ParseError),
        (RuntimeError("??"), AlphDataError),
    ])
    def test_conversion(self, raw, expected):
        converted = handle_exception(raw, context={"component": "test"})

        assert type(converted) is expected
        assert converted.cause is raw
        assert converted.context["component"] == "test"

    def test_package_errors_pass_through(self):
        error = NotFoundError("token", "abc")

        assert handle_exception(error, context={"extra": 1}) is error
        assert error.context["extra"] == 1


class TestResult:

    def test_success(self):
        result = Result.success([1, 2])

        assert result.ok
        assert result.unwrap() == [1, 2]

    def test_failure_converts_and_unwrap_raises(self):
        result = Result.failure(ValueError("bad json"))

        assert not result.ok
        assert isinstance(result.error, ParseError)
        assert result.unwrap_or("default") == "default"
        with pytest.raises(ParseError):
            result.unwrap()


class TestErrorHandler:

    def test_counts_and_reraises(self):
        handler = ErrorHandler(enable_detailed_logging=False)

        with pytest.raises(UpstreamUnavailableError):
            handler.handle_error(TimeoutError("slow"), component="Gateway")

        returned = handler.handle_error(NotFoundError("token", "abc"), component="Classifier", reraise=False)

        assert isinstance(returned, NotFoundError)
        stats = handler.get_error_stats()
        assert stats["total_errors"] == 2
        assert stats["errors_by_component"] == {"Gateway": 1, "Classifier": 1}

        stats["errors_by_component"]["Gateway"] = 99
        assert handler.get_error_stats()["errors_by_component"]["Gateway"] == 1

    def test_global_handler_is_shared(self):
        assert get_error_handler() is get_error_handler()


class TestModuleFilter:

    def _record(self, name: str, level_no: int):
        level = Mock()
        level.no = level_no
        return {"name": name, "level": level}

    def test_module_levels(self):
        filter_func = create_module_filter({"alphdata.core": "WARNING"})

        assert filter_func(self._record("alphdata.core.rate_limiter", 10)) is False
        assert filter_func(self._record("alphdata.core.rate_limiter", 30)) is True
        assert filter_func(self._record("alphdata.services.wallet_service", 10)) is True


class TestSafeExecute:

    def test_returns_result(self):
        assert safe_execute(lambda: 42) == 42

    def test_returns_default_on_error(self):
        def boom():
            raise RuntimeError("closed twice")

        assert safe_execute(boom, default_return="fallback", log_errors=False) == "fallback"
