"""Tests for SQLAlchemyAdapter against in-memory SQLite."""

import asyncio
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from polyquery_core import (
    AdapterConnectionError,
    ConnectionConfig,
    EngineError,
    QueryBuilder,
    QueryValidationError,
)
from polyquery_sql import QueryTimeoutError, SQLAdapterError, SQLAlchemyAdapter


@pytest.mark.asyncio
class TestLifecycle:
    async def test_engine_kind_from_dialect(self, adapter):
        assert adapter.engine_kind == "sqlite"
        assert adapter.name == "sqlalchemy:sqlite"
        assert adapter.emitter.dialect.paramstyle == "qmark"
        assert adapter.is_connected

    async def test_requires_config_or_engine(self):
        with pytest.raises(AdapterConnectionError):
            SQLAlchemyAdapter()

    async def test_execute_before_connect(self, engine):
        with pytest.raises(AdapterConnectionError) as excinfo:
            await SQLAlchemyAdapter(engine=engine).execute("SELECT 1")
        assert excinfo.value.code == "NOT_CONNECTED"

    async def test_owned_engine_from_config(self):
        adapter = SQLAlchemyAdapter(ConnectionConfig(engine_kind="sqlite", database=":memory:"))
        await adapter.connect()
        try:
            result = await adapter.execute("SELECT 1 AS one")
            assert result.scalar("one") == 1
        finally:
            await adapter.disconnect()
        assert not adapter.is_connected
        with pytest.raises(AdapterConnectionError):
            adapter.engine

    async def test_connect_failure_is_normalized(self):
        config = ConnectionConfig(
            engine_kind="sqlite", database="/nonexistent/dir/db.sqlite"
        )
        adapter = SQLAlchemyAdapter(config)
        with pytest.raises(AdapterConnectionError) as excinfo:
            await adapter.connect()
        assert excinfo.value.code == "CONNECTION_FAILED"


@pytest.mark.asyncio
class TestExecute:
    async def test_builder_select(self, seeded):
        qb = (
            QueryBuilder("sqlite")
            .select(["name", "age"])
            .from_("users")
            .where("active", True)
            .where("age", ">=", 18)
            .order_by("age", "DESC")
        )
        result = await seeded.run(qb)
        assert result.rows == [{"name": "alice", "age": 30}]
        assert result.affected_count == 1
        assert result.command == "select"

    async def test_search_group(self, seeded):
        qb = QueryBuilder().select("name").from_("users").search(["name", "email"], "ca")
        result = await seeded.execute(qb)
        assert [r["name"] for r in result.rows] == ["carol"]

    async def test_count(self, seeded):
        result = await seeded.run(QueryBuilder().from_("users").where_in("age", [17, 45]).count())
        assert result.scalar("count") == 2

    async def test_insert_reports_id_and_count(self, adapter):
        qb = QueryBuilder().from_("users").insert({"name": "dave", "age": 50})
        result = await adapter.run(qb)
        assert result.affected_count == 1
        assert result.inserted_id == 1
        assert result.command == "insert"

    async def test_update_and_delete_report_affected(self, seeded):
        updated = await seeded.run(
            QueryBuilder().from_("users").update({"active": False}).where("age", "<", 40)
        )
        assert updated.affected_count == 2
        deleted = await seeded.run(QueryBuilder().from_("users").delete().where("active", False))
        assert deleted.affected_count == 3

    async def test_raw_sql_with_params(self, seeded):
        result = await seeded.execute("SELECT name FROM users WHERE age > ?", [40])
        assert result.rows == [{"name": "carol"}]

    async def test_driver_errors_are_normalized(self, adapter):
        with pytest.raises(EngineError) as excinfo:
            await adapter.execute("SELECT * FROM missing_table")
        assert isinstance(excinfo.value, SQLAdapterError)
        assert not isinstance(excinfo.value, SQLAlchemyError)
        assert excinfo.value.operation == "select"
        assert excinfo.value.adapter == "sqlalchemy:sqlite"
        assert isinstance(excinfo.value.__cause__, SQLAlchemyError)

    async def test_document_operations_are_rejected(self, adapter):
        with pytest.raises(QueryValidationError):
            await adapter.execute({"collection": "users", "method": "find"})

    async def test_query_timeout(self, engine):
        config = ConnectionConfig(engine_kind="sqlite", query_timeout=0.01)
        adapter = SQLAlchemyAdapter(config, engine=engine)

        class SlowConnection:
            async def exec_driver_sql(self, sql, params=None):
                await asyncio.sleep(1)

        with pytest.raises(QueryTimeoutError) as excinfo:
            await adapter._execute_on(SlowConnection(), "SELECT 1", None)
        assert excinfo.value.code == "TIMEOUT"


@pytest.mark.asyncio
class TestTransactions:
    async def test_commit(self, adapter):
        async def work(tx):
            await tx.execute(QueryBuilder().from_("users").insert({"name": "a"}))
            await tx.execute(QueryBuilder().from_("users").insert({"name": "b"}))
            return "done"

        assert await adapter.transaction(work) == "done"
        result = await adapter.run(QueryBuilder().from_("users").count())
        assert result.scalar("count") == 2

    async def test_rollback_reraises_original_error(self, adapter):
        async def work(tx):
            await tx.execute(QueryBuilder().from_("users").insert({"name": "a"}))
            raise ValueError("abort")

        with pytest.raises(ValueError, match="abort"):
            await adapter.transaction(work)
        result = await adapter.run(QueryBuilder().from_("users").count())
        assert result.scalar("count") == 0

    async def test_constraint_violation_rolls_back(self, seeded):
        async def work(tx):
            await tx.execute(
                QueryBuilder().from_("users").insert({"name": "x", "email": "new@example.com"})
            )
            await tx.execute(
                QueryBuilder().from_("users").insert({"name": "y", "email": "alice@example.com"})
            )

        with pytest.raises(EngineError):
            await seeded.transaction(work)
        result = await seeded.execute("SELECT COUNT(*) AS n FROM users WHERE name = 'x'")
        assert result.scalar("n") == 0


@pytest.mark.asyncio
class TestIntrospection:
    async def test_health_check(self, adapter):
        health = await adapter.health_check()
        assert health["status"] == "healthy"
        assert "pool" in health

    async def test_health_check_when_disconnected(self, engine):
        health = await SQLAlchemyAdapter(engine=engine).health_check()
        assert health["status"] == "unhealthy"

    async def test_schema(self, adapter):
        schema = await adapter.get_schema()
        assert set(schema) == {"users", "orders"}
        columns = {c["name"]: c for c in schema["users"]["columns"]}
        assert columns["id"]["primary_key"] is True
        assert columns["name"]["nullable"] is False
        assert any(i["name"] == "ix_users_age" for i in schema["users"]["indexes"])
        (fk,) = schema["orders"]["foreign_keys"]
        assert fk["references"] == "users"
        assert fk["columns"] == ["user_id"]

    async def test_statistics(self, seeded):
        stats = await seeded.get_statistics()
        assert stats["engine"] == "sqlite"
        assert stats["driver"] == "aiosqlite"
        assert stats["row_counts"]["users"] == 3
        assert stats["row_counts"]["orders"] == 0
        assert stats["table_count"] == 2


async def _create_deferred_fk_tables(adapter):
    await adapter.execute("PRAGMA foreign_keys = ON")
    await adapter.execute("CREATE TABLE parents (id INTEGER PRIMARY KEY)")
    await adapter.execute(
        "CREATE TABLE children ("
        " id INTEGER PRIMARY KEY,"
        " parent_id INTEGER REFERENCES parents (id) DEFERRABLE INITIALLY DEFERRED"
        ")"
    )


def _broken_engine():
    engine = MagicMock()
    error = OperationalError("SELECT 1", None, Exception("pool exhausted"))
    engine.begin.side_effect = error
    engine.connect.side_effect = error
    return engine


@pytest.mark.asyncio
class TestUnitOfWorkFailures:
    async def test_deferred_constraint_on_commit_is_normalized(self, adapter):
        await _create_deferred_fk_tables(adapter)
        with pytest.raises(SQLAdapterError) as excinfo:
            await adapter.execute("INSERT INTO children (parent_id) VALUES (?)", [99])
        assert excinfo.value.adapter == "sqlalchemy:sqlite"
        assert isinstance(excinfo.value.__cause__, IntegrityError)

    async def test_deferred_constraint_in_transaction_is_normalized(self, adapter):
        await _create_deferred_fk_tables(adapter)

        async def work(tx):
            await tx.execute("INSERT INTO children (parent_id) VALUES (?)", [99])

        with pytest.raises(SQLAdapterError) as excinfo:
            await adapter.transaction(work)
        assert excinfo.value.operation == "commit"
        assert not isinstance(excinfo.value, SQLAlchemyError)

    async def test_checkout_failure_on_execute(self, adapter):
        adapter._engine = _broken_engine()
        with pytest.raises(SQLAdapterError) as excinfo:
            await adapter.execute("SELECT 1")
        assert excinfo.value.operation == "execute"
        assert isinstance(excinfo.value.__cause__, OperationalError)

    async def test_checkout_failure_on_transaction(self, adapter):
        adapter._engine = _broken_engine()
        called = []

        async def work(tx):
            called.append(tx)

        with pytest.raises(SQLAdapterError) as excinfo:
            await adapter.transaction(work)
        assert excinfo.value.operation == "begin"
        assert called == []

    async def test_validation_errors_pass_through(self, adapter):
        with pytest.raises(QueryValidationError) as excinfo:
            await adapter.execute({"collection": "users", "method": "find"})
        assert not isinstance(excinfo.value, EngineError)
