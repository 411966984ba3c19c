"""
CacheManager - fail-open Redis cache with tag invalidation.

Values are JSON (pydantic models through ``model_dump_json``); payloads
above ``compression_threshold`` characters are stored as
``"zlib:" + base64(zlib(json))``. When Redis cannot be reached on
:meth:`CacheManager.connect` and ``fallback_to_memory`` is set, the manager
switches to an owned :class:`MemoryCacheState` that speaks the same commands.

No backend failure ever reaches the caller: reads degrade to misses and
writes report ``False``.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import zlib
from typing import TYPE_CHECKING, Any

from .config import CacheConfig
from .exceptions import CacheError, CacheSerializationError, CacheValueTooLargeError
from .memory import MemoryCacheState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from redis.asyncio import Redis

logger = logging.getLogger("polyquery.cache")

_COMPRESSED = "zlib:"
_MISS = object()


class CacheManager:
    """
    Redis implementation of ``ICacheService``.

    Pass an existing ``redis.asyncio`` client to share it; otherwise one is
    built from ``config`` on :meth:`connect`.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        client: Redis[Any] | None = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._backend: Any = client
        self._owns_client = client is None
        self._memory: MemoryCacheState | None = None
        self._connected = False
        self._closed = False
        self.reset_stats()

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def connected(self) -> bool:
        """True while a backend is serving requests.

        An injected client serves from construction; an owned one only after
        :meth:`connect`.
        """
        return self._available() and (self._connected or not self._owns_client)

    @property
    def backend(self) -> str:
        if not self._available():
            return "disabled"
        return "memory" if isinstance(self._backend, MemoryCacheState) else "redis"

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        if not self.enabled or self._connected:
            return
        self._closed = False
        if self._backend is None:
            self._backend = self._build_client()
        try:
            await self._backend.ping()
        except Exception as e:  # noqa: BLE001
            if not self._config.fallback_to_memory:
                logger.warning("Redis unavailable, cache disabled: %s", e)
                self._backend = None
                return
            logger.warning("Redis unavailable, falling back to memory cache: %s", e)
            self._memory = MemoryCacheState(self._config.sweep_interval)
            await self._memory.start()
            self._backend = self._memory
        self._connected = True
        logger.info("Cache connected (backend=%s)", self.backend)

    async def disconnect(self) -> None:
        if self._memory is not None:
            await self._memory.stop()
            self._memory = None
            self._backend = None
        elif self._backend is not None and self._owns_client:
            try:
                await self._backend.aclose()
            except Exception as e:  # noqa: BLE001
                logger.warning("Redis close failed: %s", e)
            self._backend = None
        self._connected = False
        self._closed = True
        logger.info("Cache disconnected")

    def _build_client(self) -> Redis[Any]:
        from redis.asyncio import Redis

        cfg = self._config
        password = cfg.password.get_secret_value() if cfg.password else None
        if cfg.url:
            return Redis.from_url(
                cfg.url,
                password=password,
                socket_timeout=cfg.socket_timeout,
                decode_responses=True,
            )
        return Redis(
            host=cfg.host,
            port=cfg.port,
            db=cfg.db,
            password=password,
            socket_timeout=cfg.socket_timeout,
            decode_responses=True,
        )

    # -- keys & serialization ------------------------------------------------

    def key(self, key: str) -> str:
        full = f"{self._config.key_prefix}{key}"
        if len(full) > self._config.max_key_size:
            digest = hashlib.sha256(key.encode()).hexdigest()
            return f"{self._config.key_prefix}hash:{digest}"
        return full

    def tag_key(self, tag: str) -> str:
        return f"{self._config.key_prefix}tag:{tag}"

    def _encode(self, key: str, value: Any) -> str:
        try:
            if hasattr(value, "model_dump_json"):
                payload = value.model_dump_json()
            else:
                payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as exc:
            raise CacheSerializationError(f"cannot serialize {key}: {exc}") from exc
        if self._config.compression and len(payload) > self._config.compression_threshold:
            packed = base64.b64encode(zlib.compress(payload.encode())).decode("ascii")
            payload = _COMPRESSED + packed
        size = len(payload.encode())
        if size > self._config.max_value_size:
            raise CacheValueTooLargeError(key, size, self._config.max_value_size)
        return payload

    @staticmethod
    def _decode(raw: Any, cls: type[Any] | None) -> Any:
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            if raw.startswith(_COMPRESSED):
                raw = zlib.decompress(base64.b64decode(raw[len(_COMPRESSED) :])).decode()
            if cls is not None and hasattr(cls, "model_validate_json"):
                return cls.model_validate_json(raw)
            return json.loads(raw)
        except Exception as exc:
            raise CacheSerializationError(f"cannot deserialize value: {exc}") from exc

    def _available(self) -> bool:
        return self.enabled and self._backend is not None and not self._closed

    def _failed(self, action: str, key: str, exc: Exception) -> None:
        self._errors += 1
        logger.warning("Cache %s failed for key %s: %s", action, key, exc)

    # -- ICacheService -------------------------------------------------------

    async def get(self, key: str, cls: type[Any] | None = None) -> Any | None:
        value = await self._lookup(key, cls)
        return None if value is _MISS else value

    async def _lookup(self, key: str, cls: type[Any] | None) -> Any:
        """Cached value, or ``_MISS``; a stored ``null`` is a hit."""
        if not self._available():
            return _MISS
        try:
            raw = await self._backend.get(self.key(key))
            if raw is None:
                self._misses += 1
                return _MISS
            value = self._decode(raw, cls)
        except Exception as e:  # noqa: BLE001
            self._misses += 1
            self._failed("get", key, e)
            return _MISS
        self._hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if not self._available():
            return False
        try:
            payload = self._encode(key, value)
        except CacheValueTooLargeError as e:
            logger.warning("Cache set rejected: %s", e)
            return False
        except CacheError as e:
            self._failed("set", key, e)
            return False
        try:
            await self._backend.set(
                self.key(key), payload, ex=ttl or self._config.default_ttl
            )
        except Exception as e:  # noqa: BLE001
            self._failed("set", key, e)
            return False
        self._sets += 1
        return True

    async def delete(self, key: str) -> bool:
        if not self._available():
            return False
        try:
            removed = await self._backend.delete(self.key(key))
        except Exception as e:  # noqa: BLE001
            self._failed("delete", key, e)
            return False
        self._deletes += 1
        return bool(removed)

    async def remember(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
        cls: type[Any] | None = None,
    ) -> Any:
        cached = await self._lookup(key, cls)
        if cached is not _MISS:
            return cached
        value = await producer()
        await self.set(key, value, ttl)
        return value

    async def set_with_tags(
        self,
        key: str,
        value: Any,
        tags: Iterable[str],
        ttl: int | None = None,
    ) -> bool:
        if not await self.set(key, value, ttl):
            return False
        full_key = self.key(key)
        tag_ttl = (ttl or self._config.default_ttl) + self._config.tag_ttl_padding
        try:
            for tag in tags:
                await self._backend.sadd(self.tag_key(tag), full_key)
                await self._backend.expire(self.tag_key(tag), tag_ttl)
        except Exception as e:  # noqa: BLE001
            self._failed("tag", key, e)
            return False
        return True

    async def invalidate_by_tag(self, tag: str) -> int:
        if not self._available():
            return 0
        tag_key = self.tag_key(tag)
        try:
            members = await self._backend.smembers(tag_key)
            removed = await self._backend.delete(*members) if members else 0
            await self._backend.delete(tag_key)
        except Exception as e:  # noqa: BLE001
            self._failed("invalidate", tag_key, e)
            return 0
        self._deletes += int(removed)
        logger.debug("Invalidated %d cache entries for tag %s", removed, tag)
        return int(removed)

    # -- extended operations -------------------------------------------------

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching ``pattern`` (glob, prefix applied). SCANs."""
        if not self._available():
            return 0
        match = f"{self._config.key_prefix}{pattern}"
        try:
            keys = [k async for k in self._backend.scan_iter(match=match)]
            removed = await self._backend.delete(*keys) if keys else 0
        except Exception as e:  # noqa: BLE001
            self._failed("delete_pattern", match, e)
            return 0
        self._deletes += int(removed)
        return int(removed)

    async def exists(self, key: str) -> bool:
        if not self._available():
            return False
        try:
            return bool(await self._backend.exists(self.key(key)))
        except Exception as e:  # noqa: BLE001
            self._failed("exists", key, e)
            return False

    async def get_ttl(self, key: str) -> int | None:
        """Remaining seconds; -1 without expiry, None when missing or on error."""
        if not self._available():
            return None
        try:
            ttl = int(await self._backend.ttl(self.key(key)))
        except Exception as e:  # noqa: BLE001
            self._failed("ttl", key, e)
            return None
        return None if ttl == -2 else ttl

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._available():
            return False
        try:
            return bool(await self._backend.expire(self.key(key), seconds))
        except Exception as e:  # noqa: BLE001
            self._failed("expire", key, e)
            return False

    async def clear(self) -> int:
        """Remove every key under ``key_prefix``."""
        return await self.delete_pattern("*")

    # -- stats ---------------------------------------------------------------

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._errors = 0

    async def get_stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "sets": self._sets,
            "deletes": self._deletes,
            "errors": self._errors,
            "total_requests": total,
            "hit_rate": round(self._hits / total * 100, 2) if total else 0.0,
            "enabled": self.enabled,
            "connected": self.connected,
            "backend": self.backend,
        }
