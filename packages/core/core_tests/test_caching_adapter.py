"""Tests for CachingAdapter."""

from unittest.mock import AsyncMock

import pytest

from polyquery_core import CachingAdapter, CompiledSQL, DatabaseAdapter, QueryBuilder
from polyquery_core.result import QueryResult


async def _remember(key, producer, ttl=None):
    return await producer()


@pytest.mark.asyncio
class TestCachingAdapter:
    @pytest.fixture
    def inner(self):
        adapter = AsyncMock(spec=DatabaseAdapter)
        adapter.name = "fake"
        adapter.engine_kind = "sqlite"
        adapter.is_connected = True
        adapter.execute.return_value = QueryResult(rows=[{"id": 1}], affected_count=1)
        adapter.compile.side_effect = lambda qb: qb.to_sql("sqlite")
        return adapter

    @pytest.fixture
    def cache(self):
        service = AsyncMock()
        service.remember.side_effect = _remember
        service.get.return_value = None
        service.get_stats.return_value = {"hits": 0}
        return service

    @pytest.fixture
    def caching(self, inner, cache):
        return CachingAdapter(inner, cache, ttl=60)

    async def test_identity(self, caching):
        assert caching.name == "cached:fake"
        assert caching.engine_kind == "sqlite"
        assert caching.is_connected

    async def test_read_goes_through_remember(self, caching, inner, cache):
        query = CompiledSQL("SELECT * FROM users WHERE id = ?", [1])
        result = await caching.execute(query)
        assert result.rows == [{"id": 1}]
        key = cache.remember.call_args.args[0]
        assert key.startswith("query:")
        assert cache.remember.call_args.kwargs["ttl"] == 60
        inner.execute.assert_awaited_once_with(query, None)

    async def test_cache_hit_skips_inner(self, caching, inner, cache):
        async def hit(key, producer, ttl=None):
            return {"rows": [{"id": 9}], "affected_count": 1}

        cache.remember.side_effect = hit
        result = await caching.execute("SELECT 1")
        assert result.rows == [{"id": 9}]
        inner.execute.assert_not_called()

    async def test_builders_are_compiled_by_inner(self, caching, inner):
        qb = QueryBuilder().select().from_("users").where("id", 1)
        await caching.run(qb)
        executed = inner.execute.call_args.args[0]
        assert executed == CompiledSQL("SELECT * FROM users WHERE id = ?", [1])

    async def test_writes_pass_through_and_invalidate(self, inner, cache):
        caching = CachingAdapter(inner, cache, tags=["users"])
        await caching.execute("UPDATE users SET a = 1")
        cache.remember.assert_not_called()
        cache.invalidate_by_tag.assert_awaited_once_with("users")

    async def test_tagged_reads_use_set_with_tags(self, inner, cache):
        caching = CachingAdapter(inner, cache, ttl=30, tags=["users"])
        await caching.execute({"collection": "users", "method": "find", "filter": {}})
        cache.set_with_tags.assert_awaited_once()
        args = cache.set_with_tags.call_args
        assert args.args[2] == ["users"]
        assert args.kwargs["ttl"] == 30

    async def test_tagged_read_hit(self, inner, cache):
        cache.get.return_value = {"rows": [{"n": 1}]}
        caching = CachingAdapter(inner, cache, tags=["users"])
        result = await caching.execute({"collection": "u", "method": "count", "filter": {}})
        assert result.rows == [{"n": 1}]
        inner.execute.assert_not_called()

    async def test_failed_invalidation_is_swallowed(self, inner, cache):
        cache.invalidate_by_tag.side_effect = ConnectionError("down")
        caching = CachingAdapter(inner, cache, invalidate_tags=["users"])
        result = await caching.execute({"collection": "u", "method": "delete_many"})
        assert result.affected_count == 1

    async def test_transaction_delegates_then_invalidates(self, inner, cache):
        inner.transaction.return_value = "done"
        caching = CachingAdapter(inner, cache, tags=["orders"])
        assert await caching.transaction(AsyncMock()) == "done"
        cache.invalidate_by_tag.assert_awaited_once_with("orders")

    async def test_statistics_include_cache(self, caching, inner):
        inner.get_statistics.return_value = {"engine": "sqlite"}
        stats = await caching.get_statistics()
        assert stats == {"engine": "sqlite", "cache": {"hits": 0}}

    async def test_is_read(self):
        assert CachingAdapter.is_read("  select 1")
        assert CachingAdapter.is_read(CompiledSQL("WITH x AS (SELECT 1) SELECT * FROM x"))
        assert CachingAdapter.is_read({"method": "aggregate"})
        assert not CachingAdapter.is_read({"method": "insert_one"})
        assert not CachingAdapter.is_read("DELETE FROM t")

    async def test_cache_key_depends_on_params(self, caching):
        a = caching.cache_key(CompiledSQL("SELECT * FROM t WHERE a = ?", [1]))
        b = caching.cache_key(CompiledSQL("SELECT * FROM t WHERE a = ?", [2]))
        assert a != b
        assert a == caching.cache_key(CompiledSQL("SELECT * FROM t WHERE a = ?", [1]))
