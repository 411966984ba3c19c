"""Tests for the DatabaseAdapter contract and the error hierarchy."""

from abc import ABC

import pytest

from polyquery_core import (
    AdapterConnectionError,
    AdapterNotImplementedError,
    DatabaseAdapter,
    EngineError,
    QueryBuilder,
    QueryValidationError,
    UnsupportedOperationError,
)
from polyquery_core.result import QueryResult


class BareAdapter(DatabaseAdapter):
    name = "bare"


class DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


class WrappedError(Exception):
    def __init__(self, orig):
        super().__init__(f"wrapped: {orig}")
        self.orig = orig


@pytest.mark.asyncio
class TestDefaultsRaise:
    @pytest.mark.parametrize(
        "method",
        ["connect", "disconnect", "health_check", "get_statistics", "get_schema"],
    )
    async def test_no_silent_fallback(self, method):
        with pytest.raises(AdapterNotImplementedError) as excinfo:
            await getattr(BareAdapter(), method)()
        assert excinfo.value.operation == method
        assert excinfo.value.adapter == "bare"
        assert excinfo.value.code == "NOT_IMPLEMENTED"

    async def test_execute_and_transaction(self):
        with pytest.raises(AdapterNotImplementedError):
            await BareAdapter().execute("SELECT 1")
        with pytest.raises(AdapterNotImplementedError):
            await BareAdapter().transaction(lambda tx: None)

    async def test_compile(self):
        with pytest.raises(AdapterNotImplementedError):
            BareAdapter().compile(QueryBuilder().select().from_("t"))

    async def test_abstract_base_with_every_capability_optional(self):
        assert issubclass(DatabaseAdapter, ABC)
        assert not DatabaseAdapter.__abstractmethods__
        assert BareAdapter().is_connected is False


class TestHelpers:
    def test_ensure_connected(self):
        with pytest.raises(AdapterConnectionError) as excinfo:
            BareAdapter()._ensure_connected("execute")
        assert excinfo.value.code == "NOT_CONNECTED"

    def test_normalize_keeps_engine_code(self):
        err = BareAdapter()._normalize_error(DriverError("dup", "23505"), "insert")
        assert isinstance(err, EngineError)
        assert err.code == "23505"
        assert err.operation == "insert"
        assert err.adapter == "bare"

    def test_normalize_unwraps_orig(self):
        err = BareAdapter()._normalize_error(
            WrappedError(DriverError("locked", "40001")), "update"
        )
        assert err.code == "40001"
        assert "wrapped" in err.message

    def test_normalize_reads_numeric_args(self):
        err = BareAdapter()._normalize_error(Exception(1062, "Duplicate"), "insert")
        assert err.code == 1062

    def test_normalize_unknown_code(self):
        err = BareAdapter()._normalize_error(RuntimeError(), "select")
        assert err.code == "UNKNOWN_ERROR"
        assert err.message == "RuntimeError"

    def test_engine_errors_pass_through(self):
        original = EngineError("x", code="C")
        assert BareAdapter()._normalize_error(original, "op") is original


class TestErrorShapes:
    def test_engine_error_to_dict(self):
        data = EngineError("boom", code=7, operation="select", adapter="a").to_dict()
        assert data["error"] == "ENGINE_ERROR"
        assert data["code"] == 7
        assert data["timestamp"]

    def test_validation_error_to_dict(self):
        data = QueryValidationError("bad", field="f", target="t").to_dict()
        assert data == {
            "error": "VALIDATION_ERROR",
            "message": "bad",
            "field": "f",
            "target": "t",
        }

    def test_unsupported_operation(self):
        err = UnsupportedOperationError("merge", emitter="sql:sqlite", target="t")
        assert isinstance(err, QueryValidationError)
        assert err.to_dict()["operation"] == "merge"
        assert "sql:sqlite" in str(err)


class TestQueryResult:
    def test_helpers(self):
        result = QueryResult(rows=[{"count": 3, "x": 1}], affected_count=1)
        assert result.first() == {"count": 3, "x": 1}
        assert result.scalar() == 3
        assert result.scalar("x") == 1
        assert result.documents is result.rows
        assert QueryResult().scalar() is None
        assert result.to_dict()["affected_count"] == 1
