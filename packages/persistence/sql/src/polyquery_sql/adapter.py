"""
SQLAlchemy-async binding of the adapter contract.

Runs emitted SQL text through ``AsyncConnection.exec_driver_sql`` so the
placeholders produced by the SQL emitter reach the DBAPI driver untouched.
The emitter's paramstyle is taken from the engine's dialect at connect
time, so ``asyncpg`` gets ``$n``, ``aiomysql`` gets ``%s`` and
``aiosqlite`` gets ``?``.

Usage::

    adapter = SQLAlchemyAdapter(ConnectionConfig(engine_kind="sqlite",
                                                 database=":memory:"))
    await adapter.connect()
    result = await adapter.execute(
        QueryBuilder("sqlite").select().from_("users").where("id", 1)
    )
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from polyquery_core.config import ConnectionConfig
from polyquery_core.emitters import CompiledSQL, SQLEmitter
from polyquery_core.emitters.dialects import SUPPORTED_PARAMSTYLES
from polyquery_core.exceptions import PolyqueryError
from polyquery_core.ports.adapter import DatabaseAdapter
from polyquery_core.result import QueryResult
from sqlalchemy import inspect

from .engine import build_engine
from .exceptions import (
    AdapterConnectionError,
    QueryTimeoutError,
    QueryValidationError,
    SQLAdapterError,
    TransactionError,
)
from .transaction import SQLTransaction

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from polyquery_core.builder import QueryBuilder
    from polyquery_core.ports.adapter import ITransactionHandle, Query
    from sqlalchemy.engine import Connection
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

T = TypeVar("T")

logger = logging.getLogger("polyquery.sql")

_DIALECT_KINDS = {
    "postgresql": "postgresql",
    "mysql": "mysql",
    "mariadb": "mysql",
    "sqlite": "sqlite",
}


def _command_of(sql: str) -> str:
    head = sql.split(None, 1)
    return head[0].lower() if head else "unknown"


class SQLAlchemyAdapter(DatabaseAdapter):
    """
    Relational adapter over a SQLAlchemy :class:`AsyncEngine`.

    Pass a ``config`` to let the adapter build (and own) its engine, or an
    existing ``engine`` to share one; a shared engine is not disposed on
    :meth:`disconnect`.
    """

    error_class = SQLAdapterError

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        super().__init__()
        if config is None and engine is None:
            raise AdapterConnectionError(
                "SQLAlchemyAdapter needs a config or an engine",
                code="NO_CONFIG",
                operation="init",
                adapter="sqlalchemy",
            )
        self._config = config
        self._engine = engine
        self._owns_engine = engine is None
        if engine is not None:
            self.engine_kind = _DIALECT_KINDS.get(engine.dialect.name, engine.dialect.name)
        else:
            self.engine_kind = config.engine_kind  # type: ignore[union-attr]
        self.name = f"sqlalchemy:{self.engine_kind}"
        self._emitter = SQLEmitter(self.engine_kind)
        if engine is not None:
            self._emitter = self._emitter_for(engine)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise AdapterConnectionError(
                "engine not created; call connect() first",
                code="NOT_CONNECTED",
                operation="engine",
                adapter=self.name,
            )
        return self._engine

    @property
    def emitter(self) -> SQLEmitter:
        return self._emitter

    @property
    def query_timeout(self) -> float | None:
        return self._config.query_timeout if self._config else None

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        if self._connected:
            return
        if self._engine is None:
            self._engine = build_engine(self._config)  # type: ignore[arg-type]
        try:
            async with self._engine.connect() as conn:
                await conn.exec_driver_sql("SELECT 1")
        except Exception as exc:
            raise AdapterConnectionError(
                f"Could not connect to {self.engine_kind}: {exc}",
                code="CONNECTION_FAILED",
                operation="connect",
                adapter=self.name,
            ) from exc
        self._emitter = self._emitter_for(self._engine)
        self._connected = True
        logger.info(
            "Connected to %s (driver %s, paramstyle %s)",
            self.engine_kind,
            self._engine.driver,
            self._emitter.dialect.paramstyle,
        )

    async def disconnect(self) -> None:
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None
        self._connected = False
        logger.info("Disconnected from %s", self.engine_kind)

    def _emitter_for(self, engine: AsyncEngine) -> SQLEmitter:
        paramstyle = engine.dialect.paramstyle
        if paramstyle not in SUPPORTED_PARAMSTYLES:
            paramstyle = None
        return SQLEmitter(self.engine_kind, paramstyle=paramstyle)

    # -- execution -----------------------------------------------------------

    def compile(self, builder: QueryBuilder) -> CompiledSQL:
        return self._emitter.emit(builder.descriptor)

    async def execute(
        self, query: Query, params: list[Any] | None = None
    ) -> QueryResult:
        self._ensure_connected("execute")
        try:
            async with self.engine.begin() as conn:
                return await self._execute_on(conn, query, params)
        except PolyqueryError:
            raise
        except Exception as exc:
            # checkout or commit failed; statement errors are already wrapped
            logger.exception("Unit of work failed on %s", self.name)
            raise self._normalize_error(exc, "execute") from exc

    async def _execute_on(
        self,
        conn: AsyncConnection,
        query: Query,
        params: list[Any] | None,
    ) -> QueryResult:
        sql, bound = self._resolve(query, params)
        command = _command_of(sql)
        try:
            coro = conn.exec_driver_sql(sql, tuple(bound) if bound else None)
            if self.query_timeout:
                result = await asyncio.wait_for(coro, timeout=self.query_timeout)
            else:
                result = await coro
            return self._normalize_result(result, command)
        except asyncio.TimeoutError as exc:
            raise QueryTimeoutError(
                f"{command} exceeded {self.query_timeout}s",
                code="TIMEOUT",
                operation=command,
                adapter=self.name,
            ) from exc
        except Exception as exc:
            logger.exception("Query failed on %s: %s", self.name, sql)
            raise self._normalize_error(exc, command) from exc

    def _resolve(
        self, query: Query, params: list[Any] | None
    ) -> tuple[str, list[Any]]:
        artifact = self._prepare(query)
        if isinstance(artifact, CompiledSQL):
            return artifact.sql, list(params if params is not None else artifact.params)
        if isinstance(artifact, str):
            return artifact, list(params or [])
        raise QueryValidationError(
            f"{self.name} cannot execute {type(artifact).__name__} artifacts"
        )

    @staticmethod
    def _normalize_result(result: Any, command: str) -> QueryResult:
        if result.returns_rows:
            rows = [dict(row) for row in result.mappings().all()]
            return QueryResult(rows=rows, affected_count=len(rows), command=command)
        affected = result.rowcount if result.rowcount and result.rowcount > 0 else 0
        inserted_id = None
        if command == "insert":
            with contextlib.suppress(AttributeError):
                inserted_id = result.lastrowid
        return QueryResult(
            affected_count=affected, inserted_id=inserted_id, command=command
        )

    async def transaction(
        self, fn: Callable[[ITransactionHandle], Awaitable[T]]
    ) -> T:
        self._ensure_connected("transaction")
        async with contextlib.AsyncExitStack() as stack:
            try:
                conn = await stack.enter_async_context(self.engine.connect())
                tx = await conn.begin()
            except Exception as exc:
                raise self._normalize_error(exc, "begin") from exc
            try:
                outcome = await fn(SQLTransaction(self, conn))
            except BaseException:
                try:
                    await tx.rollback()
                except Exception as rollback_exc:
                    raise TransactionError(
                        f"rollback failed: {rollback_exc}",
                        code="ROLLBACK_FAILED",
                        operation="rollback",
                        adapter=self.name,
                    ) from rollback_exc
                logger.debug("Rolled back transaction on %s", self.name)
                raise
            try:
                await tx.commit()
            except Exception as exc:
                raise self._normalize_error(exc, "commit") from exc
            return outcome

    # -- introspection -------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        if not self._connected or self._engine is None:
            return {"status": "unhealthy", "error": "not connected"}
        try:
            async with self._engine.connect() as conn:
                await conn.exec_driver_sql("SELECT 1")
        except Exception as e:  # noqa: BLE001
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy", "pool": self._engine.pool.status()}

    async def get_schema(self) -> dict[str, Any]:
        self._ensure_connected("get_schema")
        try:
            async with self.engine.connect() as conn:
                return await conn.run_sync(_inspect_schema)
        except Exception as exc:
            raise self._normalize_error(exc, "get_schema") from exc

    async def get_statistics(self) -> dict[str, Any]:
        self._ensure_connected("get_statistics")
        try:
            async with self.engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
                counts: dict[str, int] = {}
                for table in tables:
                    result = await conn.exec_driver_sql(
                        f"SELECT COUNT(*) FROM {table}"  # noqa: S608
                    )
                    counts[table] = int(result.scalar_one())
        except Exception as exc:
            raise self._normalize_error(exc, "get_statistics") from exc
        return {
            "engine": self.engine_kind,
            "driver": self.engine.driver,
            "pool": self.engine.pool.status(),
            "table_count": len(tables),
            "row_counts": counts,
        }


def _inspect_schema(sync_conn: Connection) -> dict[str, Any]:
    inspector = inspect(sync_conn)
    schema: dict[str, Any] = {}
    for table in inspector.get_table_names():
        pk = inspector.get_pk_constraint(table).get("constrained_columns") or []
        schema[table] = {
            "columns": [
                {
                    "name": col["name"],
                    "type": str(col["type"]),
                    "nullable": col.get("nullable", True),
                    "default": col.get("default"),
                    "primary_key": col["name"] in pk,
                }
                for col in inspector.get_columns(table)
            ],
            "indexes": [
                {
                    "name": idx.get("name"),
                    "columns": idx.get("column_names", []),
                    "unique": bool(idx.get("unique")),
                }
                for idx in inspector.get_indexes(table)
            ],
            "foreign_keys": [
                {
                    "columns": fk.get("constrained_columns", []),
                    "references": fk.get("referred_table"),
                    "referred_columns": fk.get("referred_columns", []),
                }
                for fk in inspector.get_foreign_keys(table)
            ],
        }
    return schema

