"""CachingAdapter - DatabaseAdapter decorator with read-through result caching."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from ..emitters import CompiledSQL
from ..ports.adapter import DatabaseAdapter
from ..result import QueryResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from ..builder import QueryBuilder
    from ..ports.adapter import ITransactionHandle, Query
    from ..ports.cache import ICacheService

T = TypeVar("T")

logger = logging.getLogger("polyquery.caching")

_READ_METHODS = frozenset({"find", "find_one", "count", "aggregate", "distinct"})
_READ_KEYWORDS = ("SELECT", "WITH")


class CachingAdapter(DatabaseAdapter):
    """
    Decorator that adds read-through caching to any DatabaseAdapter.

    Pattern:
    - read (SELECT text, find/count/aggregate documents): serve from cache,
      otherwise delegate to inner and cache the normalized result
    - write: delegate to inner, then invalidate ``invalidate_tags``
    - transaction: delegate untouched, then invalidate ``invalidate_tags``

    Read results are stored under ``tags`` when given, so a later
    ``invalidate_by_tag`` drops them together.
    """

    def __init__(
        self,
        inner: DatabaseAdapter,
        cache: ICacheService,
        *,
        ttl: int | None = None,
        tags: Iterable[str] = (),
        invalidate_tags: Iterable[str] | None = None,
        namespace: str = "query:",
    ) -> None:
        super().__init__()
        self._inner = inner
        self._cache = cache
        self._ttl = ttl
        self._tags = list(tags)
        self._invalidate_tags = (
            list(invalidate_tags) if invalidate_tags is not None else list(self._tags)
        )
        self._namespace = namespace
        self.name = f"cached:{inner.name}"
        self.engine_kind = inner.engine_kind

    @property
    def inner(self) -> DatabaseAdapter:
        return self._inner

    @property
    def is_connected(self) -> bool:
        return self._inner.is_connected

    # -- delegation ----------------------------------------------------------

    async def connect(self) -> None:
        await self._inner.connect()

    async def disconnect(self) -> None:
        await self._inner.disconnect()

    def compile(self, builder: QueryBuilder) -> Any:
        return self._inner.compile(builder)

    async def health_check(self) -> dict[str, Any]:
        return await self._inner.health_check()

    async def get_statistics(self) -> dict[str, Any]:
        stats = await self._inner.get_statistics()
        stats["cache"] = await self._cache.get_stats()
        return stats

    async def get_schema(self) -> dict[str, Any]:
        return await self._inner.get_schema()

    # -- execution -----------------------------------------------------------

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        artifact = self._prepare(query)
        if not self.is_read(artifact):
            result = await self._inner.execute(artifact, params)
            await self._invalidate()
            return result

        key = self.cache_key(artifact, params)

        async def produce() -> dict[str, Any]:
            result = await self._inner.execute(artifact, params)
            return result.to_dict()

        if self._tags:
            cached = await self._cache.get(key)
            if cached is not None:
                return QueryResult.model_validate(cached)
            payload = await produce()
            await self._cache.set_with_tags(key, payload, self._tags, ttl=self._ttl)
        else:
            payload = await self._cache.remember(key, produce, ttl=self._ttl)
        return QueryResult.model_validate(payload)

    async def transaction(
        self, fn: Callable[[ITransactionHandle], Awaitable[T]]
    ) -> T:
        result = await self._inner.transaction(fn)
        await self._invalidate()
        return result

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def is_read(artifact: Any) -> bool:
        """True for artifacts whose results may be cached."""
        if isinstance(artifact, dict):
            return artifact.get("method") in _READ_METHODS
        text = artifact.sql if isinstance(artifact, CompiledSQL) else str(artifact)
        return text.lstrip().upper().startswith(_READ_KEYWORDS)

    def cache_key(self, artifact: Any, params: list[Any] | None = None) -> str:
        """Stable key: md5 of the artifact and its parameters."""
        if isinstance(artifact, CompiledSQL):
            payload: Any = {"sql": artifact.sql, "params": params or artifact.params}
        elif isinstance(artifact, dict):
            payload = {"operation": artifact}
        else:
            payload = {"sql": str(artifact), "params": params or []}
        raw = json.dumps(payload, sort_keys=True, default=str)
        digest = hashlib.md5(raw.encode("utf-8"), usedforsecurity=False).hexdigest()
        return f"{self._namespace}{digest}"

    async def _invalidate(self) -> None:
        for tag in self._invalidate_tags:
            try:
                removed = await self._cache.invalidate_by_tag(tag)
                logger.debug("Invalidated %d cached result(s) for tag %s", removed, tag)
            except Exception as e:  # noqa: BLE001
                logger.warning("Cache invalidate failed for tag %s: %s", tag, e)
