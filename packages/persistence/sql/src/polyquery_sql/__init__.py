"""polyquery-sql - SQLAlchemy-async relational adapter."""

from __future__ import annotations

from .adapter import SQLAlchemyAdapter
from .engine import build_engine, engine_options
from .exceptions import QueryTimeoutError, SQLAdapterError
from .transaction import SQLTransaction

__all__ = [
    "SQLAlchemyAdapter",
    "SQLTransaction",
    "SQLAdapterError",
    "QueryTimeoutError",
    "build_engine",
    "engine_options",
]
