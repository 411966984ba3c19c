"""Redis cache for polyquery with an in-memory fallback."""

from __future__ import annotations

from .cache import CacheManager
from .config import CacheConfig
from .exceptions import CacheError, CacheSerializationError, CacheValueTooLargeError
from .memory import MemoryCacheState

__all__ = [
    "CacheConfig",
    "CacheError",
    "CacheManager",
    "CacheSerializationError",
    "CacheValueTooLargeError",
    "MemoryCacheState",
]
