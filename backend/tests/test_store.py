"""Tests for the Redis-backed ledger store (Redis client mocked)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tallybot.models.contracts import DEFAULT_CATALOG
from tallybot.utils import store as store_mod
from tallybot.utils.store import CATALOG_KEY, LedgerStore


def _store(**client_attrs) -> tuple[LedgerStore, AsyncMock]:
    client = AsyncMock()
    for name, value in client_attrs.items():
        setattr(client, name, value)
    return LedgerStore(client=client), client


class TestCatalog:
    @pytest.mark.asyncio
    async def test_initialize_sets_default_only_if_absent(self):
        store, client = _store(set=AsyncMock(return_value=True))
        await store.initialize_catalog()
        client.set.assert_awaited_once_with(CATALOG_KEY, json.dumps(DEFAULT_CATALOG), nx=True)

    @pytest.mark.asyncio
    async def test_initialize_swallows_redis_errors(self):
        store, _ = _store(set=AsyncMock(side_effect=RedisConnectionError("down")))
        await store.initialize_catalog()  # should not raise

    @pytest.mark.asyncio
    async def test_get_catalog(self):
        raw = json.dumps({"Chai": 10, "samosa": 15.5, "broken": "ten", "flag": True})
        store, client = _store(get=AsyncMock(return_value=raw))
        assert await store.get_catalog() == {"chai": 10, "samosa": 15.5}
        client.get.assert_awaited_once_with(CATALOG_KEY)

    @pytest.mark.asyncio
    async def test_missing_catalog_is_empty(self):
        store, _ = _store(get=AsyncMock(return_value=None))
        assert await store.get_catalog() == {}

    @pytest.mark.asyncio
    async def test_corrupt_catalog_is_empty(self):
        store, _ = _store(get=AsyncMock(return_value="{not json"))
        assert await store.get_catalog() == {}

    @pytest.mark.asyncio
    async def test_catalog_error_is_empty(self):
        store, _ = _store(get=AsyncMock(side_effect=RedisConnectionError("down")))
        assert await store.get_catalog() == {}


class TestTotals:
    @pytest.mark.asyncio
    async def test_get_totals_uses_chat_key(self):
        store, client = _store(get=AsyncMock(return_value='{"chai": 3, "bad": "x"}'))
        assert await store.get_totals(42) == {"chai": 3}
        client.get.assert_awaited_once_with("user:42")

    @pytest.mark.asyncio
    async def test_get_totals_error_is_empty(self):
        store, _ = _store(get=AsyncMock(side_effect=RedisConnectionError("down")))
        assert await store.get_totals(42) == {}

    @pytest.mark.asyncio
    async def test_set_totals(self):
        store, client = _store(set=AsyncMock(return_value=True))
        assert await store.set_totals(42, {"chai": 2}) is True
        client.set.assert_awaited_once_with("user:42", '{"chai": 2}')

    @pytest.mark.asyncio
    async def test_set_totals_failure_returns_false(self):
        store, _ = _store(set=AsyncMock(side_effect=RedisConnectionError("down")))
        assert await store.set_totals(42, {"chai": 2}) is False

    @pytest.mark.asyncio
    async def test_reset_totals_writes_empty_object(self):
        store, client = _store(set=AsyncMock(return_value=True))
        assert await store.reset_totals(7) is True
        client.set.assert_awaited_once_with("user:7", "{}")


class TestPing:
    @pytest.mark.asyncio
    async def test_ping_ok(self):
        store, _ = _store(ping=AsyncMock(return_value=True))
        assert await store.ping() is True

    @pytest.mark.asyncio
    async def test_ping_failure(self):
        store, _ = _store(ping=AsyncMock(side_effect=RedisConnectionError("down")))
        assert await store.ping() is False


class TestSingleton:
    def test_get_store_is_cached_and_resettable(self):
        store_mod.reset_store()
        first = store_mod.get_store()
        assert store_mod.get_store() is first
        store_mod.reset_store()
        assert store_mod.get_store() is not first
        store_mod.reset_store()

    def test_client_built_lazily_with_retry(self):
        store = LedgerStore()
        client = store.client
        assert store.client is client
        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["decode_responses"] is True
        assert kwargs["retry"] is not None
