"""Tests for settings, structured logging, timeouts and error types."""

import asyncio
import json
import logging

import pytest


class TestSettings:
    """Tests for Settings and get_settings."""

    def test_defaults(self):
        """Test default values."""
        from gamesearch.core.config import Settings

        settings = Settings(_env_file=None)

        assert settings.SEARCH_INDEX_NAME == "games"
        assert settings.SEARCH_BACKEND == "elasticsearch"
        assert settings.SEARCH_STRICT_MODE is False
        assert settings.SEARCH_MAX_PAGE_SIZE is None
        assert settings.AGGREGATION_MAX_BUCKETS == 50
        assert settings.SEARCH_TIMEOUT_SECONDS == 10.0

    def test_environment_override(self, monkeypatch):
        """Test environment variables, case-insensitive."""
        from gamesearch.core.config import get_settings, reset_settings

        monkeypatch.setenv("search_index_name", "catalog")
        monkeypatch.setenv("SEARCH_STRICT_MODE", "true")
        monkeypatch.setenv("SEARCH_TIMEOUT_SECONDS", "2.5")
        reset_settings()

        settings = get_settings()

        assert settings.SEARCH_INDEX_NAME == "catalog"
        assert settings.SEARCH_STRICT_MODE is True
        assert settings.SEARCH_TIMEOUT_SECONDS == 2.5
        assert get_settings() is settings


class TestStructuredLogging:
    """Tests for the JSON formatter and request context."""

    def _record(self, message="hello", exc_info=None, **extra):
        record = logging.LogRecord(
            name="gamesearch.test",
            level=logging.ERROR,
            pathname=__file__,
            lineno=10,
            msg=message,
            args=(),
            exc_info=exc_info,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_fields(self):
        """Test core fields, service and extra fields."""
        from gamesearch.core.logging.structured import StructuredFormatter

        formatter = StructuredFormatter(service_name="svc", environment="test")
        entry = json.loads(formatter.format(self._record(extra_fields={"index": "games"})))

        assert entry["level"] == "ERROR"
        assert entry["logger"] == "gamesearch.test"
        assert entry["message"] == "hello"
        assert entry["service"] == "svc"
        assert entry["environment"] == "test"
        assert entry["extra"] == {"index": "games"}
        assert entry["location"]["line"] == 10

    def test_exception_info(self):
        """Test exceptions are serialised."""
        from gamesearch.core.errors import QueryFailure
        from gamesearch.core.logging.structured import StructuredFormatter

        try:
            raise QueryFailure("shard failure")
        except QueryFailure:
            import sys
            exc_info = sys.exc_info()

        entry = json.loads(StructuredFormatter().format(self._record(exc_info=exc_info)))

        assert entry["exception"]["type"] == "QueryFailure"
        assert entry["exception"]["message"] == "shard failure"
        assert entry["exception"]["code"] == "QUERY_FAILED"

    def test_search_context(self):
        """Test records inside an index call carry index and operation."""
        from gamesearch.core.logging.structured import StructuredFormatter, search_context

        with search_context("games", "popular"):
            inside = json.loads(StructuredFormatter().format(self._record()))
        outside = json.loads(StructuredFormatter().format(self._record()))

        assert inside["search"] == {"index": "games", "operation": "popular"}
        assert "search" not in outside

    def test_request_context(self):
        """Test request and user ids are stamped and cleared."""
        from gamesearch.core.logging.structured import (
            StructuredFormatter,
            clear_request_context,
            set_request_context,
        )

        request_id = set_request_context(user_id="user-7")
        try:
            entry = json.loads(StructuredFormatter().format(self._record()))
            assert entry["request_id"] == request_id
            assert entry["user_id"] == "user-7"
        finally:
            clear_request_context()

        entry = json.loads(StructuredFormatter().format(self._record()))
        assert "request_id" not in entry
        assert "user_id" not in entry

    def test_configure_from_settings(self):
        """Test root logger setup from settings."""
        from gamesearch.core.config import Settings
        from gamesearch.core.logging.structured import (
            StructuredFormatter,
            configure_from_settings,
        )

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_from_settings(Settings(LOG_LEVEL="debug", LOG_JSON=True))
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)

            configure_from_settings(Settings(LOG_LEVEL="WARNING", LOG_JSON=False))
            assert root.level == logging.WARNING
            assert not isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestSimpleTimeout:
    """Tests for SimpleTimeout."""

    @pytest.mark.asyncio
    async def test_success_and_metrics(self):
        """Test results pass through and are counted."""
        from gamesearch.core.resilience import SimpleTimeout, TimeoutConfig

        async def add(a, b=0):
            return a + b

        timeout = SimpleTimeout(TimeoutConfig(timeout=1.0))

        assert await timeout.execute(add, 1, b=2) == 3
        metrics = timeout.get_metrics()
        assert metrics.successful_calls == 1
        assert metrics.timed_out_calls == 0
        assert metrics.current_timeout == 1.0

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test slow operations raise OperationTimeout."""
        from gamesearch.core.resilience import OperationTimeout, SimpleTimeout, TimeoutConfig

        async def slow():
            await asyncio.sleep(1)

        timeout = SimpleTimeout(TimeoutConfig(timeout=0.01))

        with pytest.raises(OperationTimeout) as exc_info:
            await timeout.execute(slow)

        assert exc_info.value.timeout == 0.01
        assert timeout.get_metrics().timed_out_calls == 1


class TestErrors:
    """Tests for error types."""

    def test_codes_and_dict(self):
        """Test each failure class carries its code."""
        from gamesearch.core.errors import (
            ErrorCode,
            IndexAlreadyExists,
            IndexUnavailable,
            MappingInconsistency,
            QueryFailure,
            SearchError,
            WriteFailure,
        )

        assert IndexUnavailable("x").code is ErrorCode.INDEX_UNAVAILABLE
        assert IndexAlreadyExists("x").code is ErrorCode.INDEX_EXISTS
        assert IndexAlreadyExists("x").code is not IndexUnavailable("x").code
        assert WriteFailure("x").code is ErrorCode.WRITE_FAILED
        assert QueryFailure("x").code is ErrorCode.QUERY_FAILED
        assert MappingInconsistency("x").code is ErrorCode.MAPPING_INCONSISTENCY
        assert issubclass(MappingInconsistency, SearchError)

        error = WriteFailure("rejected", details={"doc_id": "1"})
        assert error.to_dict() == {
            "code": "WRITE_FAILED",
            "message": "rejected",
            "details": {"doc_id": "1"},
        }
