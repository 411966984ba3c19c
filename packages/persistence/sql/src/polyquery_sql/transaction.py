"""Transaction handle passed to ``SQLAlchemyAdapter.transaction(fn)``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from polyquery_core.ports.adapter import Query
    from polyquery_core.result import QueryResult
    from sqlalchemy.ext.asyncio import AsyncConnection

    from .adapter import SQLAlchemyAdapter


class SQLTransaction:
    """Executes statements on the connection that owns the open transaction."""

    def __init__(self, adapter: SQLAlchemyAdapter, connection: AsyncConnection) -> None:
        self._adapter = adapter
        self._connection = connection

    @property
    def connection(self) -> AsyncConnection:
        return self._connection

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        return await self._adapter._execute_on(self._connection, query, params)
