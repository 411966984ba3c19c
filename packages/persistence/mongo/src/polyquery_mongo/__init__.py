"""polyquery-mongo - Motor document-store adapter."""

from __future__ import annotations

from .adapter import MongoAdapter
from .connection import MongoConnectionManager
from .exceptions import MongoAdapterError, MongoConnectionError
from .serialization import normalize_document, normalize_value
from .transaction import MongoTransaction, session_in_transaction

__all__ = [
    "MongoAdapter",
    "MongoConnectionManager",
    "MongoTransaction",
    "MongoAdapterError",
    "MongoConnectionError",
    "normalize_document",
    "normalize_value",
    "session_in_transaction",
]
