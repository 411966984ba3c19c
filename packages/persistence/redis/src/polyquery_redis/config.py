"""CacheConfig - cache connection and behaviour settings."""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheConfig(BaseSettings):
    """
    Settings for :class:`CacheManager`.

    Reads ``CACHE_*`` environment variables (``CACHE_ENABLED``,
    ``CACHE_HOST``, ``CACHE_DEFAULT_TTL`` ...) for fields not passed
    explicitly.
    """

    model_config = SettingsConfigDict(env_prefix="CACHE_", extra="ignore")

    enabled: bool = True
    url: str | None = Field(default=None, description="redis:// URL; overrides host/port")
    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    password: SecretStr | None = None
    db: int = Field(default=0, ge=0, le=15)
    socket_timeout: float = Field(default=5.0, gt=0, description="Seconds")
    default_ttl: int = Field(default=300, ge=1, description="Seconds")
    key_prefix: str = "db:cache:"
    compression: bool = True
    compression_threshold: int = Field(default=1000, ge=0, description="Characters")
    max_key_size: int = Field(default=250, ge=16)
    max_value_size: int = Field(default=1024 * 1024, ge=1, description="Bytes")
    tag_ttl_padding: int = Field(default=60, ge=0, description="Seconds")
    fallback_to_memory: bool = True
    sweep_interval: float = Field(default=60.0, gt=0, description="Seconds")

    @classmethod
    def from_env(cls, prefix: str = "CACHE_", **overrides: Any) -> CacheConfig:
        return cls(_env_prefix=prefix, **overrides)
