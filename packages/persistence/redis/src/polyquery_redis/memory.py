"""
MemoryCacheState - in-process stand-in for the Redis commands CacheManager uses.

An owned value with an explicit lifecycle: ``start()`` launches the periodic
sweep of expired keys and ``stop()`` cancels it. Nothing here is shared at
module level, so two managers never see each other's entries.
"""

from __future__ import annotations

import asyncio
import contextlib
import fnmatch
import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger("polyquery.cache.memory")


class MemoryCacheState:
    """Dict-backed key/value and set store with per-key expiry.

    Method names and return values mirror ``redis.asyncio.Redis``
    (``get/set/delete/sadd/smembers/expire/exists/ttl/scan_iter/ping``).
    Values are stored as given; ``get`` returns them unchanged.
    """

    def __init__(self, sweep_interval: float = 60.0) -> None:
        self._sweep_interval = sweep_interval
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self._running = False
        self._task: asyncio.Task[None] | None = None

    # -- lifecycle -----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Memory cache sweeper started (interval=%.1fs)", self._sweep_interval
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._task, timeout=5.0)
            self._task = None
        logger.info("Memory cache sweeper stopped")

    async def _run_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._sweep_interval)
            removed = self.sweep()
            if removed:
                logger.debug("Swept %d expired cache entries", removed)

    def sweep(self) -> int:
        """Drop every expired key now; return how many were removed."""
        now = time.monotonic()
        expired = [k for k, at in self._expires.items() if at <= now]
        for key in expired:
            self._drop(key)
        return len(expired)

    # -- helpers -------------------------------------------------------------

    def _drop(self, key: str) -> bool:
        self._expires.pop(key, None)
        return self._data.pop(key, None) is not None

    def _alive(self, key: str) -> bool:
        at = self._expires.get(key)
        if at is not None and at <= time.monotonic():
            self._drop(key)
            return False
        return key in self._data

    def __len__(self) -> int:
        return sum(1 for k in list(self._data) if self._alive(k))

    # -- redis-compatible commands -------------------------------------------

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Any | None:
        return self._data[key] if self._alive(key) else None

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self._data[key] = value
        if ex:
            self._expires[key] = time.monotonic() + ex
        else:
            self._expires.pop(key, None)
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for k in keys if self._alive(k) and self._drop(k))

    async def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if self._alive(k))

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self._expires[key] = time.monotonic() + seconds
        return True

    async def ttl(self, key: str) -> int:
        if not self._alive(key):
            return -2
        at = self._expires.get(key)
        if at is None:
            return -1
        return max(int(round(at - time.monotonic())), 0)

    async def sadd(self, key: str, *members: str) -> int:
        current = self._data.get(key) if self._alive(key) else None
        if not isinstance(current, set):
            current = set()
            self._data[key] = current
        before = len(current)
        current.update(members)
        return len(current) - before

    async def smembers(self, key: str) -> set[str]:
        value = self._data.get(key) if self._alive(key) else None
        return set(value) if isinstance(value, set) else set()

    async def scan_iter(self, match: str | None = None) -> AsyncIterator[str]:
        for key in list(self._data):
            if self._alive(key) and (match is None or fnmatch.fnmatchcase(key, match)):
                yield key

    async def flushdb(self) -> bool:
        self._data.clear()
        self._expires.clear()
        return True

    async def aclose(self) -> None:
        await self.stop()
