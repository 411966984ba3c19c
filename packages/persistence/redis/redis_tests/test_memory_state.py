"""Tests for MemoryCacheState."""

import asyncio
import time

import pytest

from polyquery_redis.memory import MemoryCacheState


def _expire_now(state: MemoryCacheState, key: str) -> None:
    state._expires[key] = time.monotonic() - 1


@pytest.mark.asyncio
class TestMemoryCacheState:
    async def test_set_get_delete(self):
        state = MemoryCacheState()
        await state.set("a", "1")
        assert await state.get("a") == "1"
        assert await state.delete("a", "missing") == 1
        assert await state.get("a") is None

    async def test_expired_keys_are_invisible(self):
        state = MemoryCacheState()
        await state.set("a", "1", ex=30)
        _expire_now(state, "a")
        assert await state.get("a") is None
        assert await state.exists("a") == 0

    async def test_ttl_semantics(self):
        state = MemoryCacheState()
        await state.set("forever", "x")
        await state.set("short", "x", ex=30)
        assert await state.ttl("forever") == -1
        assert 0 < await state.ttl("short") <= 30
        assert await state.ttl("missing") == -2

    async def test_sets_and_expire(self):
        state = MemoryCacheState()
        assert await state.sadd("tag", "k1", "k2") == 2
        assert await state.sadd("tag", "k2") == 0
        assert await state.smembers("tag") == {"k1", "k2"}
        assert await state.expire("tag", 10) is True
        assert await state.expire("nope", 10) is False

    async def test_scan_iter_matches_glob(self):
        state = MemoryCacheState()
        await state.set("p:users:1", "a")
        await state.set("p:users:2", "b")
        await state.set("p:orders:1", "c")
        keys = [k async for k in state.scan_iter(match="p:users:*")]
        assert sorted(keys) == ["p:users:1", "p:users:2"]

    async def test_sweep_removes_expired(self):
        state = MemoryCacheState()
        await state.set("a", "1", ex=30)
        await state.set("b", "2")
        _expire_now(state, "a")
        assert state.sweep() == 1
        assert len(state) == 1

    async def test_start_stop_lifecycle(self):
        state = MemoryCacheState(sweep_interval=0.01)
        await state.start()
        assert state.running
        await state.set("a", "1", ex=30)
        _expire_now(state, "a")
        await asyncio.sleep(0.05)
        assert "a" not in state._data
        await state.stop()
        assert not state.running
        assert state._task is None

    async def test_instances_do_not_share_entries(self):
        first, second = MemoryCacheState(), MemoryCacheState()
        await first.set("k", "v")
        assert await second.get("k") is None
