"""Document-store adapter exceptions."""

from __future__ import annotations

from polyquery_core.exceptions import AdapterConnectionError, EngineError


class MongoAdapterError(EngineError):
    """Base for document-store adapter errors."""


class MongoConnectionError(AdapterConnectionError):
    """Raised when the Motor client cannot be created or used."""

    def __init__(self, message: str, *, code: str = "CONNECTION_FAILED") -> None:
        super().__init__(message, code=code, operation="connect", adapter="mongodb")
