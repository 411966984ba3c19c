"""MongoConnectionManager - Motor client lifecycle and health check."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .exceptions import MongoConnectionError

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
    from polyquery_core.config import ConnectionConfig


class MongoConnectionManager:
    """Own one Motor client and hand out its databases."""

    def __init__(
        self,
        url: str = "mongodb://localhost:27017",
        *,
        database: str = "app",
        server_selection_timeout_ms: int = 5000,
        connect_timeout_ms: int = 10000,
        **kwargs: Any,
    ) -> None:
        self._url = url
        self._database = database
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._connect_timeout_ms = connect_timeout_ms
        self._kwargs = kwargs
        self._client: AsyncIOMotorClient[Any] | None = None

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> MongoConnectionManager:
        timeout_ms = int(config.connect_timeout * 1000)
        options = dict(config.options)
        options.setdefault("maxPoolSize", config.pool_size)
        return cls(
            config.url(),
            database=config.database,
            server_selection_timeout_ms=timeout_ms,
            connect_timeout_ms=timeout_ms,
            **options,
        )

    @property
    def database_name(self) -> str:
        return self._database

    async def connect(self) -> AsyncIOMotorClient[Any]:
        """Create and cache the Motor client. Idempotent."""
        if self._client is not None:
            return self._client
        try:
            from motor.motor_asyncio import AsyncIOMotorClient
        except ImportError as e:
            raise MongoConnectionError(
                "motor is required; install with motor>=3.3.0"
            ) from e
        try:
            self._client = AsyncIOMotorClient(
                self._url,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
                connectTimeoutMS=self._connect_timeout_ms,
                **self._kwargs,
            )
        except Exception as e:
            raise MongoConnectionError(str(e)) from e
        return self._client

    @property
    def client(self) -> AsyncIOMotorClient[Any]:
        if self._client is None:
            raise MongoConnectionError(
                "Not connected; call connect() first", code="NOT_CONNECTED"
            )
        return self._client

    def get_database(self, name: str | None = None) -> AsyncIOMotorDatabase[Any]:
        return self.client.get_database(name or self._database)

    def close(self) -> None:
        """Close the client (Motor's close() is synchronous)."""
        if self._client is not None:
            self._client.close()
            self._client = None

    async def health_check(self) -> bool:
        """Ping the server; True if reachable."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except Exception:  # noqa: BLE001
            return False
