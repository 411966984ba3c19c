"""ICacheService - Protocol for the cache the execution wrapper relies on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable


@runtime_checkable
class ICacheService(Protocol):
    """
    Fail-open cache service.

    Implementations never raise for backend failures: a failed read is a
    miss and a failed write reports ``False``.
    """

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss."""
        ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Cache ``value`` for ``ttl`` seconds (the default TTL when None)."""
        ...

    async def delete(self, key: str) -> bool:
        ...

    async def remember(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any:
        """
        Return the cached value for ``key`` or await ``producer`` and cache
        its result. Producer failures propagate and nothing is cached.
        """
        ...

    async def set_with_tags(
        self,
        key: str,
        value: Any,
        tags: Iterable[str],
        ttl: int | None = None,
    ) -> bool:
        ...

    async def invalidate_by_tag(self, tag: str) -> int:
        """Delete every key tagged ``tag``; return how many were removed."""
        ...

    async def get_stats(self) -> dict[str, Any]:
        ...
