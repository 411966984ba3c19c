"""Exceptions for the SQLAlchemy relational adapter."""

from __future__ import annotations

from polyquery_core.exceptions import (
    AdapterConnectionError,
    EngineError,
    QueryValidationError,
    TransactionError,
)


class SQLAdapterError(EngineError):
    """Base exception for all relational-adapter failures."""


class QueryTimeoutError(SQLAdapterError):
    """Raised when a statement exceeds the configured query timeout."""


__all__: list[str] = [
    "AdapterConnectionError",
    "QueryTimeoutError",
    "QueryValidationError",
    "SQLAdapterError",
    "TransactionError",
]
