"""
Motor binding of the adapter contract.

Executes the structured operations produced by the document emitter::

    {"collection": "users", "method": "find", "filter": {...}, "sort": {...}}

Every driver result is normalized into :class:`QueryResult`: documents come
back as plain dicts with ``ObjectId`` values as strings, writes report their
affected count, inserts their new identifiers, and ``count`` a single
``{"count": n}`` row.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from polyquery_core.emitters import MongoEmitter
from polyquery_core.exceptions import (
    PolyqueryError,
    QueryValidationError,
    TransactionError,
    UnsupportedOperationError,
)
from polyquery_core.ports.adapter import DatabaseAdapter
from polyquery_core.result import QueryResult

from .connection import MongoConnectionManager
from .exceptions import MongoAdapterError, MongoConnectionError
from .serialization import normalize_document, normalize_value
from .transaction import MongoTransaction, session_in_transaction

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from motor.motor_asyncio import AsyncIOMotorDatabase
    from polyquery_core.builder import QueryBuilder
    from polyquery_core.config import ConnectionConfig
    from polyquery_core.emitters import DocumentOperation
    from polyquery_core.ports.adapter import ITransactionHandle, Query

T = TypeVar("T")

logger = logging.getLogger("polyquery.mongo")


class MongoAdapter(DatabaseAdapter):
    """
    Document-store adapter over a :class:`MongoConnectionManager`.

    Multi-document transactions need a replica set; pass
    ``use_transactions=False`` on standalone servers to run
    ``transaction(fn)`` on a plain session instead.
    """

    name = "mongodb"
    engine_kind = "mongodb"
    error_class = MongoAdapterError

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        connection: MongoConnectionManager | None = None,
        database: str | None = None,
        use_transactions: bool = True,
        strict_joins: bool = False,
    ) -> None:
        super().__init__()
        if connection is None:
            if config is None:
                raise MongoConnectionError(
                    "MongoAdapter needs a config or a connection", code="NO_CONFIG"
                )
            connection = MongoConnectionManager.from_config(config)
        self._connection = connection
        self._database_name = database or connection.database_name
        self._use_transactions = use_transactions
        self._emitter = MongoEmitter(strict_joins=strict_joins)
        self._db: AsyncIOMotorDatabase[Any] | None = None
        self._handlers: dict[str, Callable[..., Awaitable[QueryResult]]] = {
            "find": self._find,
            "find_one": self._find_one,
            "insert_one": self._insert_one,
            "insert_many": self._insert_many,
            "update_one": self._update_one,
            "update_many": self._update_many,
            "delete_one": self._delete_one,
            "delete_many": self._delete_many,
            "count": self._count,
            "aggregate": self._aggregate,
            "distinct": self._distinct,
        }

    @property
    def connection(self) -> MongoConnectionManager:
        return self._connection

    @property
    def db(self) -> AsyncIOMotorDatabase[Any]:
        if self._db is None:
            raise MongoConnectionError(
                "Not connected; call connect() first", code="NOT_CONNECTED"
            )
        return self._db

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        if self._connected:
            return
        await self._connection.connect()
        self._db = self._connection.get_database(self._database_name)
        self._connected = True
        logger.info("Connected to MongoDB database %s", self._database_name)

    async def disconnect(self) -> None:
        self._connection.close()
        self._db = None
        self._connected = False
        logger.info("Disconnected from MongoDB")

    # -- execution -----------------------------------------------------------

    def compile(self, builder: QueryBuilder) -> DocumentOperation:
        return self._emitter.emit(builder.descriptor)

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        """Run one document operation (``params`` is unused by documents)."""
        return await self._execute_with(query, None)

    async def _execute_with(self, query: Query, session: Any) -> QueryResult:
        self._ensure_connected("execute")
        operation = self._prepare(query)
        if not isinstance(operation, dict):
            raise QueryValidationError(
                f"{self.name} cannot execute {type(operation).__name__} artifacts"
            )
        method = operation.get("method")
        handler = self._handlers.get(str(method))
        if handler is None:
            raise UnsupportedOperationError(method, emitter=self.name)
        collection_name = operation.get("collection")
        if not collection_name:
            raise QueryValidationError("operation has no collection")
        collection = self.db[collection_name]
        kwargs: dict[str, Any] = {"session": session} if session is not None else {}
        try:
            result = await handler(collection, operation, kwargs)
        except PolyqueryError:
            raise
        except Exception as exc:
            logger.exception("MongoDB %s on %s failed", method, collection_name)
            raise self._normalize_error(exc, str(method)) from exc
        logger.debug(
            "MongoDB %s on %s affected %d",
            method,
            collection_name,
            result.affected_count,
        )
        return result

    # -- handlers ------------------------------------------------------------

    async def _find(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        cursor = coll.find(op.get("filter", {}), op.get("projection"), **kw)
        if op.get("sort"):
            cursor = cursor.sort(list(op["sort"].items()))
        if op.get("skip"):
            cursor = cursor.skip(op["skip"])
        if op.get("limit") is not None:
            cursor = cursor.limit(op["limit"])
        docs = [normalize_document(d) for d in await cursor.to_list(length=None)]
        return QueryResult(rows=docs, affected_count=len(docs), command="find")

    async def _find_one(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        doc = await coll.find_one(op.get("filter", {}), op.get("projection"), **kw)
        rows = [normalize_document(doc)] if doc is not None else []
        return QueryResult(rows=rows, affected_count=len(rows), command="find_one")

    async def _insert_one(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        res = await coll.insert_one(dict(op["document"]), **kw)
        return QueryResult(
            affected_count=1,
            inserted_id=normalize_value(res.inserted_id),
            command="insert_one",
        )

    async def _insert_many(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        docs = [dict(d) for d in op["documents"]]
        res = await coll.insert_many(docs, **kw)
        ids = [normalize_value(i) for i in res.inserted_ids]
        return QueryResult(
            affected_count=len(ids), inserted_id=ids, command="insert_many"
        )

    async def _update_one(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        res = await coll.update_one(
            op.get("filter", {}), op["update"], upsert=op.get("upsert", False), **kw
        )
        return _write_result(res.modified_count, res.upserted_id, "update_one")

    async def _update_many(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        res = await coll.update_many(
            op.get("filter", {}), op["update"], upsert=op.get("upsert", False), **kw
        )
        return _write_result(res.modified_count, res.upserted_id, "update_many")

    async def _delete_one(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        res = await coll.delete_one(op.get("filter", {}), **kw)
        return _write_result(res.deleted_count, None, "delete_one")

    async def _delete_many(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        res = await coll.delete_many(op.get("filter", {}), **kw)
        return _write_result(res.deleted_count, None, "delete_many")

    async def _count(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        total = await coll.count_documents(op.get("filter", {}), **kw)
        return QueryResult(rows=[{"count": total}], affected_count=1, command="count")

    async def _aggregate(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        cursor = coll.aggregate(list(op.get("pipeline", [])), **kw)
        docs = [normalize_document(d) for d in await cursor.to_list(length=None)]
        return QueryResult(rows=docs, affected_count=len(docs), command="aggregate")

    async def _distinct(
        self, coll: Any, op: DocumentOperation, kw: dict[str, Any]
    ) -> QueryResult:
        field = op.get("field")
        if not field:
            raise QueryValidationError("distinct requires a field")
        values = await coll.distinct(field, op.get("filter", {}), **kw)
        rows = [{field: normalize_value(v)} for v in values]
        return QueryResult(rows=rows, affected_count=len(rows), command="distinct")

    # -- transactions --------------------------------------------------------

    async def transaction(
        self, fn: Callable[[ITransactionHandle], Awaitable[T]]
    ) -> T:
        self._ensure_connected("transaction")
        try:
            session = await self._connection.client.start_session()
        except Exception as exc:
            raise self._normalize_error(exc, "begin") from exc
        try:
            if self._use_transactions:
                try:
                    session.start_transaction()
                except Exception as exc:
                    raise self._normalize_error(exc, "begin") from exc
            try:
                outcome = await fn(MongoTransaction(self, session))
            except BaseException:
                if session_in_transaction(session):
                    try:
                        await session.abort_transaction()
                    except Exception as abort_exc:
                        raise TransactionError(
                            f"rollback failed: {abort_exc}",
                            code="ROLLBACK_FAILED",
                            operation="rollback",
                            adapter=self.name,
                        ) from abort_exc
                    logger.debug("Aborted MongoDB transaction")
                raise
            if session_in_transaction(session):
                try:
                    await session.commit_transaction()
                except Exception as exc:
                    raise self._normalize_error(exc, "commit") from exc
            return outcome
        finally:
            await self._end_session(session)

    async def _end_session(self, session: Any) -> None:
        try:
            ended = session.end_session()
            if inspect.isawaitable(ended):
                await ended
        except Exception as e:  # noqa: BLE001
            logger.warning("Could not end MongoDB session: %s", e)

    # -- introspection -------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        healthy = await self._connection.health_check()
        if healthy:
            return {"status": "healthy", "database": self._database_name}
        return {"status": "unhealthy", "database": self._database_name}

    async def get_statistics(self) -> dict[str, Any]:
        self._ensure_connected("get_statistics")
        try:
            stats = await self.db.command("dbstats")
        except Exception as exc:
            raise self._normalize_error(exc, "get_statistics") from exc
        return {
            "engine": self.engine_kind,
            "database": self._database_name,
            "collections": stats.get("collections", 0),
            "objects": stats.get("objects", 0),
            "data_size": stats.get("dataSize", 0),
            "storage_size": stats.get("storageSize", 0),
            "indexes": stats.get("indexes", 0),
        }

    async def get_schema(self) -> dict[str, Any]:
        """Collections with their indexes, document count and sampled fields."""
        self._ensure_connected("get_schema")
        schema: dict[str, Any] = {}
        try:
            for name in sorted(await self.db.list_collection_names()):
                coll = self.db[name]
                sample = await coll.find_one()
                schema[name] = {
                    "fields": sorted(sample.keys()) if sample else [],
                    "indexes": await coll.index_information(),
                    "document_count": await coll.count_documents({}),
                }
        except Exception as exc:
            raise self._normalize_error(exc, "get_schema") from exc
        return schema


def _write_result(count: int, upserted_id: Any, command: str) -> QueryResult:
    return QueryResult(
        affected_count=count,
        inserted_id=normalize_value(upserted_id) if upserted_id is not None else None,
        command=command,
    )
