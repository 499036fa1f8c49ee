"""Unit tests for the in-memory TTL cache provider."""

from __future__ import annotations

import pytest

from stackdigger.providers.cache.memory_cache import MemoryCacheProvider


class TestMemoryCacheProvider:
    @pytest.mark.asyncio
    async def test_set_then_get(self) -> None:
        cache = MemoryCacheProvider()
        await cache.set("nts:/search", {"results": []})
        assert await cache.get("nts:/search") == {"results": []}

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self) -> None:
        assert await MemoryCacheProvider().get("absent") is None

    @pytest.mark.asyncio
    async def test_delete_and_clear(self) -> None:
        cache = MemoryCacheProvider()
        await cache.set("a", 1)
        await cache.set("b", 2)

        await cache.delete("a")
        await cache.delete("never-set")
        assert await cache.get("a") is None
        assert len(cache) == 1

        await cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_max_size_evicts(self) -> None:
        cache = MemoryCacheProvider(max_size=2)
        for key in ("a", "b", "c"):
            await cache.set(key, key)
        assert len(cache) == 2
        assert await cache.get("c") == "c"
