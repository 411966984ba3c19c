"""Query and engine exceptions for polyquery-core."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


class PolyqueryError(Exception):
    """Root exception for the entire polyquery toolkit."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class QueryValidationError(PolyqueryError):
    """Raised when a query descriptor is malformed or cannot be emitted.

    Carries the offending ``field`` and ``target`` when known so an outer
    layer can render a 4xx response.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        target: str | None = None,
    ) -> None:
        self.message = message
        self.field = field
        self.target = target
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "VALIDATION_ERROR",
            "message": self.message,
            "field": self.field,
            "target": self.target,
        }


class UnsupportedOperationError(QueryValidationError):
    """Raised when an emitter meets an operation kind it cannot translate."""

    def __init__(
        self,
        operation: object,
        *,
        emitter: str | None = None,
        target: str | None = None,
    ) -> None:
        self.operation = operation
        self.emitter = emitter
        message = f"unsupported operation: {operation!r}"
        if emitter:
            message += f" (emitter: {emitter})"
        super().__init__(message, target=target)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNSUPPORTED_OPERATION",
            "message": self.message,
            "operation": str(self.operation),
            "emitter": self.emitter,
            "target": self.target,
        }


class EngineError(PolyqueryError):
    """Normalized wrapper around any storage-engine failure.

    Adapters raise this (``raise EngineError(...) from exc``) so the native
    driver exception never crosses the adapter boundary.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | int | None = None,
        operation: str | None = None,
        adapter: str | None = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else "UNKNOWN_ERROR"
        self.operation = operation
        self.adapter = adapter
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "ENGINE_ERROR",
            "message": self.message,
            "code": self.code,
            "operation": self.operation,
            "adapter": self.adapter,
            "timestamp": self.timestamp.isoformat(),
        }


class AdapterConnectionError(EngineError):
    """Raised when an adapter is used without an active connection."""


class AdapterNotImplementedError(EngineError):
    """Raised by the adapter contract for every capability a binding omits."""

    def __init__(self, method: str, adapter: str) -> None:
        super().__init__(
            f"{adapter}.{method}() is not implemented",
            code="NOT_IMPLEMENTED",
            operation=method,
            adapter=adapter,
        )


class TransactionError(EngineError):
    """Raised when rolling back a failed unit of work itself fails."""


class CacheError(PolyqueryError):
    """Raised inside cache services; always recovered before reaching callers."""
