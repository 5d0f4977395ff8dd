"""Tests for the state backends, the sweeper and the per-session lock."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from copilot.infra.keyed_lock import KeyedLock, NullLock
from copilot.infra.state import LocalStateBackend, RedisStateBackend, StateSweeper


class TestLocalStateBackend:
    @pytest.mark.asyncio
    async def test_put_get_evict(self, backend):
        await backend.put("k", {"a": 1})
        assert await backend.get("k") == {"a": 1}
        await backend.evict("k")
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_copied(self, backend):
        value = {"messages": ["a"]}
        await backend.put("k", value)
        value["messages"].append("b")
        stored = await backend.get("k")
        stored["messages"].append("c")
        assert await backend.get("k") == {"messages": ["a"]}

    @pytest.mark.asyncio
    async def test_lazy_expiry(self, backend, clock):
        await backend.put("k", {"a": 1}, ttl=timedelta(seconds=10))
        clock.advance(9)
        assert await backend.get("k") == {"a": 1}
        clock.advance(2)
        assert await backend.get("k") is None
        assert len(backend) == 0

    @pytest.mark.asyncio
    async def test_entry_alive_at_its_expiry_instant(self, backend, clock):
        await backend.put("k", {"a": 1}, ttl=timedelta(seconds=10))
        clock.advance(10)
        assert await backend.get("k") == {"a": 1}
        assert await backend.sweep() == 0
        clock.advance(0.5)
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_size_bound_evicts_oldest_write(self, clock):
        backend = LocalStateBackend(max_entries=2, clock=clock)
        await backend.put("a", {})
        await backend.put("b", {})
        await backend.put("a", {"touched": True})
        await backend.put("c", {})
        assert await backend.get("b") is None
        assert await backend.get("a") == {"touched": True}
        assert len(backend) == 2

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, backend, clock):
        await backend.put("short", {}, ttl=timedelta(seconds=5))
        await backend.put("long", {}, ttl=timedelta(seconds=50))
        await backend.put("forever", {})
        clock.advance(10)
        assert await backend.sweep() == 1
        assert len(backend) == 2

    @pytest.mark.asyncio
    async def test_aclose_clears(self, backend):
        await backend.put("k", {})
        await backend.aclose()
        assert len(backend) == 0


class TestRedisStateBackend:
    @pytest.mark.asyncio
    async def test_put_with_ttl_uses_expiry(self):
        redis = AsyncMock()
        backend = RedisStateBackend(redis)
        await backend.put("k", {"a": 1}, ttl=timedelta(minutes=30))
        redis.set.assert_awaited_once_with("k", json.dumps({"a": 1}), ex=1800)

    @pytest.mark.asyncio
    async def test_put_without_ttl(self):
        redis = AsyncMock()
        await RedisStateBackend(redis).put("k", {"a": 1})
        redis.set.assert_awaited_once_with("k", json.dumps({"a": 1}))

    @pytest.mark.asyncio
    async def test_sub_second_ttl_rounds_up(self):
        redis = AsyncMock()
        await RedisStateBackend(redis).put("k", {}, ttl=timedelta(milliseconds=200))
        assert redis.set.await_args.kwargs["ex"] == 1

    @pytest.mark.asyncio
    async def test_fractional_ttl_never_shortened(self):
        redis = AsyncMock()
        await RedisStateBackend(redis).put("k", {}, ttl=timedelta(seconds=59.2))
        assert redis.set.await_args.kwargs["ex"] == 60

    @pytest.mark.asyncio
    async def test_get_decodes_json(self):
        redis = AsyncMock()
        redis.get.return_value = '{"count": 3}'
        assert await RedisStateBackend(redis).get("k") == {"count": 3}

    @pytest.mark.asyncio
    async def test_get_missing(self):
        redis = AsyncMock()
        redis.get.return_value = None
        assert await RedisStateBackend(redis).get("k") is None

    @pytest.mark.asyncio
    async def test_undecodable_value_discarded(self):
        redis = AsyncMock()
        redis.get.return_value = "{broken"
        assert await RedisStateBackend(redis).get("k") is None
        redis.delete.assert_awaited_once_with("k")

    @pytest.mark.asyncio
    async def test_sweep_is_noop(self):
        assert await RedisStateBackend(AsyncMock()).sweep() == 0


class TestStateSweeper:
    @pytest.mark.asyncio
    async def test_sweeps_periodically(self, backend, clock):
        await backend.put("k", {}, ttl=timedelta(seconds=1))
        clock.advance(2)

        sweeper = StateSweeper(backend, interval=0.01)
        await sweeper.start()
        try:
            for _ in range(100):
                if len(backend) == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await sweeper.stop()

        assert len(backend) == 0
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_survives_sweep_errors(self):
        backend = AsyncMock()
        backend.sweep.side_effect = [RuntimeError("boom"), 0, 0, 0, 0, 0, 0, 0]
        sweeper = StateSweeper(backend, interval=0.01)
        await sweeper.start()
        try:
            for _ in range(100):
                if backend.sweep.await_count >= 2:
                    break
                await asyncio.sleep(0.01)
            assert sweeper.running
        finally:
            await sweeper.stop()


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_serialized(self):
        locks = KeyedLock()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("s1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_different_keys_overlap(self):
        locks = KeyedLock()
        inside = 0
        peak = 0

        async def worker(key: str) -> None:
            nonlocal inside, peak
            async with locks.hold(key):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(worker("s1"), worker("s2"))
        assert peak == 2

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            async with locks.hold("s1"):
                raise RuntimeError("boom")
        assert len(locks) == 0
        async with locks.hold("s1"):
            pass

    @pytest.mark.asyncio
    async def test_null_lock_does_not_block(self):
        lock = NullLock()
        async with lock.hold("s1"):
            async with lock.hold("s1"):
                pass
