"""
DatabaseAdapter - the uniform contract every engine binding implements.

Every capability fails with :class:`AdapterNotImplementedError` until a
binding overrides it; there is no silent fallback.

Example::

    class PostgresAdapter(DatabaseAdapter):
        name = "postgresql"

        async def connect(self) -> None: ...
        async def execute(self, query, params=None) -> QueryResult: ...
"""

from __future__ import annotations

import logging
from abc import ABC
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from ..builder import QueryBuilder
from ..exceptions import (
    AdapterConnectionError,
    AdapterNotImplementedError,
    EngineError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..emitters import CompiledSQL, DocumentOperation
    from ..result import QueryResult

    Query = CompiledSQL | DocumentOperation | QueryBuilder | str

T = TypeVar("T")

logger = logging.getLogger("polyquery.adapter")


@runtime_checkable
class ITransactionHandle(Protocol):
    """What ``transaction(fn)`` passes to ``fn``: execution scoped to one unit of work."""

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        ...


class DatabaseAdapter(ABC):
    """
    Base class for engine bindings.

    No method is abstract: a binding may implement a subset, and the rest
    raise :class:`AdapterNotImplementedError` when called.

    Subclasses set ``name`` and ``engine_kind`` and override every
    capability. ``execute()`` accepts an emitted artifact, a raw query plus
    ``params``, or a :class:`QueryBuilder` (compiled with :meth:`compile`).
    """

    name: str = "base"
    engine_kind: str = "unknown"
    error_class: type[EngineError] = EngineError

    def __init__(self) -> None:
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        raise AdapterNotImplementedError("connect", self.name)

    async def disconnect(self) -> None:
        raise AdapterNotImplementedError("disconnect", self.name)

    # -- execution -----------------------------------------------------------

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        raise AdapterNotImplementedError("execute", self.name)

    async def transaction(
        self, fn: Callable[[ITransactionHandle], Awaitable[T]]
    ) -> T:
        """Run ``fn`` inside one unit of work.

        Commits when ``fn`` returns; rolls back and re-raises the original
        error when it fails.
        """
        raise AdapterNotImplementedError("transaction", self.name)

    def compile(self, builder: QueryBuilder) -> Any:
        """Emit ``builder`` in this engine's native artifact."""
        raise AdapterNotImplementedError("compile", self.name)

    async def run(self, builder: QueryBuilder) -> QueryResult:
        """Compile and execute a builder."""
        return await self.execute(self.compile(builder))

    # -- introspection -------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        raise AdapterNotImplementedError("health_check", self.name)

    async def get_statistics(self) -> dict[str, Any]:
        raise AdapterNotImplementedError("get_statistics", self.name)

    async def get_schema(self) -> dict[str, Any]:
        raise AdapterNotImplementedError("get_schema", self.name)

    # -- helpers for bindings ------------------------------------------------

    def _ensure_connected(self, operation: str) -> None:
        if not self._connected:
            raise AdapterConnectionError(
                f"{self.name} adapter is not connected",
                code="NOT_CONNECTED",
                operation=operation,
                adapter=self.name,
            )

    def _prepare(self, query: Query) -> Any:
        if isinstance(query, QueryBuilder):
            return self.compile(query)
        return query

    def _normalize_error(self, exc: BaseException, operation: str) -> EngineError:
        """Wrap an engine-native exception in :class:`EngineError`.

        The engine's own error code is kept when the driver exposes one.
        """
        if isinstance(exc, EngineError):
            return exc
        # SQLAlchemy wraps the DBAPI error in `orig`.
        source = getattr(exc, "orig", None) or exc
        code = None
        for attr in ("sqlstate", "pgcode", "sqlite_errorname", "errno", "code"):
            code = getattr(source, attr, None)
            if code is not None:
                break
        if code is None:
            args = getattr(source, "args", ())
            if args and isinstance(args[0], int):
                code = args[0]
        message = str(exc) or type(exc).__name__
        logger.debug("%s %s failed: %s", self.name, operation, message)
        return self.error_class(
            message, code=code, operation=operation, adapter=self.name
        )
