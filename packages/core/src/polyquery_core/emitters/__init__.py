"""Emitters translate a finalized descriptor into one engine's native artifact."""

from __future__ import annotations

from .base import CompiledSQL, DocumentOperation, IEmitter
from .dialects import (
    MySQLDialect,
    PostgreSQLDialect,
    SQLDialect,
    SQLiteDialect,
    get_dialect,
)
from .document import MongoEmitter, compile_conditions
from .sql import SQLEmitter

DOCUMENT_TARGETS = frozenset({"mongodb", "mongo"})


def get_emitter(target: str, **options: object) -> IEmitter:
    """Select the emitter for an engine kind (``sqlite``, ``mongodb`` ...)."""
    if str(target).lower() in DOCUMENT_TARGETS:
        return MongoEmitter(**options)  # type: ignore[arg-type]
    return SQLEmitter(target, **options)  # type: ignore[arg-type]


__all__ = [
    "CompiledSQL",
    "DocumentOperation",
    "IEmitter",
    "SQLDialect",
    "SQLiteDialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "SQLEmitter",
    "MongoEmitter",
    "compile_conditions",
    "get_emitter",
    "DOCUMENT_TARGETS",
]
