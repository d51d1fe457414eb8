from __future__ import annotations

import asyncio
import json

from fakeredis import aioredis as fake_aioredis
import pytest

from supportbot.cache.backend import MemoryCacheBackend, RedisCacheBackend
from supportbot.cache.history import ConversationHistory
from supportbot.cache.response_cache import ResponseCache, make_cache_key


def test_cache_key_normalizes_case_and_whitespace():
    assert make_cache_key("Return policy?") == make_cache_key("  return POLICY? ")
    assert make_cache_key("Return policy?") != make_cache_key("Shipping?")
    assert make_cache_key("x").startswith("msg_response:")


def test_response_cache_round_trip_in_memory(memory_backend):
    cache = ResponseCache(memory_backend, default_ttl=60)

    assert asyncio.run(cache.put("What is your return policy?", "30 days.", metadata={"model": "m"})) is True
    hit = asyncio.run(cache.get("what is your return policy?"))

    assert hit.answer == "30 days."
    assert hit.metadata == {"model": "m"}
    assert asyncio.run(cache.get("unrelated")) is None


def test_response_cache_ignores_corrupt_entries(memory_backend):
    asyncio.run(memory_backend.set(make_cache_key("q"), "{not json", 60))
    assert asyncio.run(ResponseCache(memory_backend).get("q")) is None


def test_memory_backend_expires_entries():
    now = [100.0]
    backend = MemoryCacheBackend(clock=lambda: now[0])

    asyncio.run(backend.set("k", "v", ttl=10))
    assert asyncio.run(backend.get("k")) == "v"
    now[0] = 110.0
    assert asyncio.run(backend.get("k")) is None


def test_memory_backend_sweeps_expired_keys_on_write():
    now = [0.0]
    backend = MemoryCacheBackend(clock=lambda: now[0])

    async def scenario():
        await backend.set("written-once", "v", ttl=10)
        await backend.push_capped("old-list", "x", max_len=5, ttl=10)
        now[0] = 20.0
        await backend.set("fresh", "v", ttl=10)
        return await backend.describe()

    assert asyncio.run(scenario())["keys"] == 1


def test_memory_backend_capped_list_newest_first():
    backend = MemoryCacheBackend()

    async def scenario():
        for value in ("a", "b", "c", "d"):
            await backend.push_capped("list", value, max_len=3, ttl=60)
        return await backend.range("list", 10)

    assert asyncio.run(scenario()) == ["d", "c", "b"]


def test_redis_backend_with_fakeredis():
    async def scenario():
        backend = RedisCacheBackend(fake_aioredis.FakeRedis(decode_responses=True))
        cache = ResponseCache(backend, default_ttl=120)
        await cache.put("Track my order", "Use the tracking link.")
        hit = await cache.get("track my order")
        raw = await backend.get(make_cache_key("Track my order"))
        ttl = await backend.client.ttl(make_cache_key("Track my order"))
        for value in ("1", "2", "3"):
            await backend.push_capped("hist", value, max_len=2, ttl=30)
        items = await backend.range("hist", 5)
        pinged = await backend.ping()
        await backend.close()
        return hit, json.loads(raw), ttl, items, pinged

    hit, stored, ttl, items, pinged = asyncio.run(scenario())
    assert hit.answer == "Use the tracking link."
    assert set(stored) == {"query", "response", "metadata", "timestamp"}
    assert 0 < ttl <= 120
    assert items == ["3", "2"]
    assert pinged is True


def test_history_returns_oldest_first_and_maps_roles(history):
    async def scenario():
        await history.append("u1", {"message": "Hi", "sender": {"type": "user"}})
        await history.append("u1", {"message": "Hello!", "sender": {"type": "bot"}})
        await history.append("u2", {"message": "Other user", "sender": {"type": "user"}})
        return await history.messages("u1"), await history.recent_turns("u1", limit=5)

    messages, turns = asyncio.run(scenario())
    assert [item["message"] for item in messages] == ["Hi", "Hello!"]
    assert [(turn.role, turn.content) for turn in turns] == [("user", "Hi"), ("assistant", "Hello!")]


@pytest.mark.parametrize("limit", [0, -1])
def test_history_non_positive_limit_is_empty(history, limit):
    asyncio.run(history.append("u1", {"message": "Hi", "sender": {"type": "user"}}))
    assert asyncio.run(history.messages("u1", limit=limit)) == []


def test_history_caps_messages():
    history = ConversationHistory(MemoryCacheBackend(), ttl=60, max_messages=2)

    async def scenario():
        for index in range(4):
            await history.append("u1", {"message": str(index), "sender": {"type": "user"}})
        return await history.messages("u1", limit=10)

    assert [item["message"] for item in asyncio.run(scenario())] == ["2", "3"]
