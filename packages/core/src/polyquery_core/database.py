"""
Database - one adapter wired with an optional cache and query monitor.

Example::

    async with Database.from_config(ConnectionConfig(engine_kind="sqlite")) as db:
        qb = db.query_builder().select().from_("users").where("active", True)
        result = await db.query(qb)
        page = await db.paginate("users", page=1, limit=20)
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from .adapters.caching import CachingAdapter
from .builder import QueryBuilder
from .emitters import CompiledSQL
from .factory import create_adapter
from .pagination import Paginator

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .config import ConnectionConfig
    from .monitor import QueryMonitor
    from .pagination import PaginationResult
    from .ports.adapter import DatabaseAdapter, ITransactionHandle, Query
    from .ports.cache import ICacheService
    from .result import QueryResult

T = TypeVar("T")

logger = logging.getLogger("polyquery.database")


def _command_of(query: Any) -> str:
    if isinstance(query, QueryBuilder):
        op = query.descriptor.operation
        return op.value if op else "unknown"
    if isinstance(query, dict):
        return str(query.get("method", "unknown"))
    text = query.sql if isinstance(query, CompiledSQL) else str(query)
    head = text.split(None, 1)
    return head[0].lower() if head else "unknown"


class Database:
    """Facade over an adapter with optional caching and monitoring."""

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        cache: ICacheService | None = None,
        monitor: QueryMonitor | None = None,
        cache_ttl: int | None = None,
        cache_tags: Iterable[str] = (),
    ) -> None:
        self._adapter = adapter
        self._cache = cache
        self._monitor = monitor
        self._cached: DatabaseAdapter | None = (
            CachingAdapter(adapter, cache, ttl=cache_ttl, tags=cache_tags)
            if cache is not None
            else None
        )

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig | None = None,
        **kwargs: Any,
    ) -> Database:
        return cls(create_adapter(config), **kwargs)

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def cache(self) -> ICacheService | None:
        return self._cache

    @property
    def monitor(self) -> QueryMonitor | None:
        return self._monitor

    @property
    def is_connected(self) -> bool:
        return self._adapter.is_connected

    def query_builder(self) -> QueryBuilder:
        """Return a fresh builder targeting this database's engine."""
        return QueryBuilder(self._adapter.engine_kind)

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        logger.info("Connecting to %s", self._adapter.engine_kind)
        await self._adapter.connect()
        connect = getattr(self._cache, "connect", None)
        if connect is not None:
            await connect()

    async def disconnect(self) -> None:
        disconnect = getattr(self._cache, "disconnect", None)
        if disconnect is not None:
            await disconnect()
        await self._adapter.disconnect()
        logger.info("Disconnected from %s", self._adapter.engine_kind)

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    # -- execution -----------------------------------------------------------

    async def query(
        self,
        query: Query,
        params: list[Any] | None = None,
        *,
        cache: bool = True,
    ) -> QueryResult:
        """Execute ``query``; reads go through the cache unless ``cache=False``."""
        executor = self._cached if (cache and self._cached is not None) else self._adapter
        if self._monitor is None:
            return await executor.execute(query, params)
        with self._monitor.track(_command_of(query), query):
            return await executor.execute(query, params)

    async def transaction(
        self, fn: Callable[[ITransactionHandle], Awaitable[T]]
    ) -> T:
        executor = self._cached or self._adapter
        return await executor.transaction(fn)

    async def paginate(self, target: str, **options: Any) -> PaginationResult:
        """See :meth:`Paginator.paginate` for ``options``."""
        executor = self._cached or self._adapter
        return await Paginator(executor, target).paginate(**options)

    # -- introspection -------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        start = time.perf_counter()
        try:
            details = await self._adapter.health_check()
        except Exception as e:  # noqa: BLE001
            logger.warning("Health check failed for %s: %s", self._adapter.name, e)
            details = {"status": "unhealthy", "error": str(e)}
        elapsed = (time.perf_counter() - start) * 1000
        status = details.get("status", "unhealthy")
        return {
            **details,
            "status": status,
            "engine": self._adapter.engine_kind,
            "response_time_ms": round(elapsed, 2),
            "connected": self._adapter.is_connected and status == "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def get_stats(self) -> dict[str, Any]:
        stats = dict(await self._adapter.get_statistics())
        if self._monitor is not None:
            stats["performance"] = self._monitor.get_stats()
        if self._cache is not None:
            stats["cache"] = await self._cache.get_stats()
        return stats

    async def get_schema(self) -> dict[str, Any]:
        return await self._adapter.get_schema()
