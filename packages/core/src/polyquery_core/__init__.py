"""polyquery-core - engine-agnostic query descriptor, builder and emitters.

No driver dependencies. Engine bindings live in ``polyquery_sql`` and
``polyquery_mongo``; the Redis cache lives in ``polyquery_redis``.
"""

from __future__ import annotations

# ── Adapters ────────────────────────────────────────────────────
from .adapters import CachingAdapter

# ── Query model ──────────────────────────────────────────────────
from .builder import QueryBuilder
from .config import ConnectionConfig, MonitorConfig
from .database import Database
from .descriptor import (
    Join,
    OrderBy,
    Predicate,
    PredicateGroup,
    QueryDescriptor,
    TextSearch,
)

# ── Emitters ─────────────────────────────────────────────────────
from .emitters import (
    CompiledSQL,
    DocumentOperation,
    IEmitter,
    MongoEmitter,
    SQLEmitter,
    get_dialect,
    get_emitter,
)

# ── Exceptions ───────────────────────────────────────────────────
from .exceptions import (
    AdapterConnectionError,
    AdapterNotImplementedError,
    CacheError,
    EngineError,
    PolyqueryError,
    QueryValidationError,
    TransactionError,
    UnsupportedOperationError,
)
from .factory import create_adapter, register_adapter
from .monitor import QueryMonitor
from .operators import Direction, JoinKind, Logic, OperationKind, Operator
from .pagination import PaginationMeta, PaginationResult, Paginator

# ── Ports ────────────────────────────────────────────────────────
from .ports import DatabaseAdapter, ICacheService, ITransactionHandle
from .result import QueryResult

__all__ = [
    # Adapters
    "CachingAdapter",
    "DatabaseAdapter",
    "ICacheService",
    "ITransactionHandle",
    "create_adapter",
    "register_adapter",
    # Query model
    "QueryBuilder",
    "QueryDescriptor",
    "Predicate",
    "PredicateGroup",
    "TextSearch",
    "Join",
    "OrderBy",
    "Operator",
    "Logic",
    "Direction",
    "JoinKind",
    "OperationKind",
    # Emitters
    "CompiledSQL",
    "DocumentOperation",
    "IEmitter",
    "SQLEmitter",
    "MongoEmitter",
    "get_dialect",
    "get_emitter",
    # Execution
    "Database",
    "QueryResult",
    "QueryMonitor",
    "Paginator",
    "PaginationMeta",
    "PaginationResult",
    # Config
    "ConnectionConfig",
    "MonitorConfig",
    # Exceptions
    "PolyqueryError",
    "QueryValidationError",
    "UnsupportedOperationError",
    "EngineError",
    "AdapterConnectionError",
    "AdapterNotImplementedError",
    "TransactionError",
    "CacheError",
]
