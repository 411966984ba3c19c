"""Cache exceptions. Raised internally and recovered inside CacheManager."""

from __future__ import annotations

from polyquery_core.exceptions import CacheError


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded or decoded."""


class CacheValueTooLargeError(CacheError):
    """Raised when an encoded value exceeds ``max_value_size``."""

    def __init__(self, key: str, size: int, limit: int) -> None:
        self.key = key
        self.size = size
        self.limit = limit
        super().__init__(f"value for {key} is {size} bytes (limit {limit})")


__all__: list[str] = [
    "CacheError",
    "CacheSerializationError",
    "CacheValueTooLargeError",
]
