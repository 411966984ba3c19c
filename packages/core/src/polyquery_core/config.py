"""Connection and monitoring configuration, loadable from the environment."""

from __future__ import annotations

from typing import Any, Literal
from urllib.parse import quote_plus

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EngineKind = Literal["postgresql", "mysql", "sqlite", "mongodb"]

_ENGINE_ALIASES = {
    "postgres": "postgresql",
    "pg": "postgresql",
    "mariadb": "mysql",
    "mongo": "mongodb",
    "sqlite3": "sqlite",
}

_DEFAULT_PORTS: dict[str, int] = {
    "postgresql": 5432,
    "mysql": 3306,
    "mongodb": 27017,
}

_SQLALCHEMY_SCHEMES = {
    "postgresql": "postgresql+asyncpg",
    "mysql": "mysql+aiomysql",
    "sqlite": "sqlite+aiosqlite",
}


class ConnectionConfig(BaseSettings):
    """
    Where and how an adapter connects.

    Reads ``DB_*`` environment variables (``DB_ENGINE_KIND``, ``DB_HOST``,
    ``DB_PORT``, ``DB_DATABASE``, ``DB_USERNAME``, ``DB_PASSWORD`` ...) for
    any field not passed explicitly.
    """

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    engine_kind: EngineKind = Field(default="postgresql", description="Engine family")
    host: str = Field(default="localhost")
    port: int | None = Field(default=None, ge=1, le=65535)
    database: str = Field(default="app", description="Database name or SQLite path")
    username: str | None = None
    password: SecretStr | None = None
    dsn: str | None = Field(default=None, description="Full URL; overrides the parts")
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=5, ge=0)
    connect_timeout: float = Field(default=10.0, gt=0, description="Seconds")
    query_timeout: float | None = Field(default=30.0, gt=0, description="Seconds")
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("engine_kind", mode="before")
    @classmethod
    def _normalize_engine(cls, value: Any) -> Any:
        if isinstance(value, str):
            key = value.strip().lower()
            return _ENGINE_ALIASES.get(key, key)
        return value

    @classmethod
    def from_env(cls, prefix: str = "DB_", **overrides: Any) -> ConnectionConfig:
        """Build a config from ``<prefix>*`` environment variables."""
        return cls(_env_prefix=prefix, **overrides)

    @property
    def is_document_store(self) -> bool:
        return self.engine_kind == "mongodb"

    @property
    def resolved_port(self) -> int | None:
        return self.port or _DEFAULT_PORTS.get(self.engine_kind)

    def url(self) -> str:
        """Connection URL for SQLAlchemy (async driver) or Motor."""
        if self.dsn:
            return self.dsn
        if self.engine_kind == "sqlite":
            return f"sqlite+aiosqlite:///{self.database}"
        scheme = (
            "mongodb"
            if self.engine_kind == "mongodb"
            else _SQLALCHEMY_SCHEMES[self.engine_kind]
        )
        credentials = ""
        if self.username:
            credentials = quote_plus(self.username)
            if self.password is not None:
                credentials += ":" + quote_plus(self.password.get_secret_value())
            credentials += "@"
        path = "" if self.engine_kind == "mongodb" else self.database
        return f"{scheme}://{credentials}{self.host}:{self.resolved_port}/{path}"


class MonitorConfig(BaseModel):
    """Query monitoring thresholds."""

    enabled: bool = True
    slow_query_threshold_ms: float = Field(default=1000.0, ge=0)
    max_samples: int = Field(default=1000, ge=1, description="Durations kept for p95")
