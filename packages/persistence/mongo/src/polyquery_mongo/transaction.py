"""Transaction handle and session helpers for the document adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorClientSession
    from polyquery_core.ports.adapter import Query
    from polyquery_core.result import QueryResult

    from .adapter import MongoAdapter


def session_in_transaction(session: Any) -> bool:
    """Whether ``session`` has an active transaction.

    Motor exposes ``in_transaction`` as a property; test doubles may use a
    method.
    """
    in_txn = getattr(session, "in_transaction", False)
    return in_txn() if callable(in_txn) else bool(in_txn)


class MongoTransaction:
    """Executes operations bound to one client session."""

    def __init__(
        self, adapter: MongoAdapter, session: AsyncIOMotorClientSession
    ) -> None:
        self._adapter = adapter
        self._session = session

    @property
    def session(self) -> AsyncIOMotorClientSession:
        return self._session

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        return await self._adapter._execute_with(query, self._session)
