"""Tests for the persistent series cache."""

import asyncio
from datetime import date

import pytest

from econfeed.storage.cache import SeriesCache


class TestCacheKey:
    """Tests for key construction."""

    def test_key_is_deterministic(self):
        key1 = SeriesCache.make_key("census", "acs/acs5:B01001_001E", date(2020, 1, 1), date(2021, 1, 1))
        key2 = SeriesCache.make_key("census", "acs/acs5:B01001_001E", date(2020, 1, 1), date(2021, 1, 1))

        assert key1 == key2
        assert key1 == "census:acs/acs5:B01001_001E:2020-01-01:2021-01-01"

    def test_key_differs_by_range(self):
        key1 = SeriesCache.make_key("bea", "NIPA:T10105", date(2020, 1, 1), date(2021, 1, 1))
        key2 = SeriesCache.make_key("bea", "NIPA:T10105", date(2020, 1, 1), date(2022, 1, 1))

        assert key1 != key2


class TestSeriesCache:
    """Tests for SeriesCache reads, writes and eviction."""

    @pytest.mark.asyncio
    async def test_get_missing(self, cache):
        assert await cache.get("bea:missing") is None
        assert cache.misses == 1

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache):
        await cache.set("bea:a", '{"x": 1}')

        assert await cache.get("bea:a") == '{"x": 1}'
        assert cache.hits == 1

    @pytest.mark.asyncio
    async def test_overwrite(self, cache):
        await cache.set("bea:a", "old")
        await cache.set("bea:a", "new")

        assert await cache.get("bea:a") == "new"
        assert (await cache.stats()).entries == 1

    @pytest.mark.asyncio
    async def test_expired_entry_hidden_from_fresh_reads(self, cache, clock):
        await cache.set("bea:a", "payload", ttl=60)
        clock.advance(61)

        assert await cache.get("bea:a") is None
        assert await cache.get("bea:a", allow_stale=True) == "payload"
        assert cache.stale_hits == 1

    @pytest.mark.asyncio
    async def test_entry_fresh_at_ttl_boundary(self, cache, clock):
        await cache.set("bea:a", "payload", ttl=60)
        clock.advance(60)

        assert await cache.get("bea:a") == "payload"

    @pytest.mark.asyncio
    async def test_default_ttl_applies(self, cache, clock):
        await cache.set("bea:a", "payload")
        clock.advance(cache.default_ttl + 1)

        assert await cache.get("bea:a") is None

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path, clock):
        """Test that entries persist across cache instances."""
        path = tmp_path / "persist.db"
        first = SeriesCache(path, clock=clock)
        await first.set("fred:GDP", "payload")
        await first.close()

        second = SeriesCache(path, clock=clock)
        try:
            assert await second.get("fred:GDP") == "payload"
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_size_eviction_oldest_first(self, tmp_path, clock):
        """Test that exceeding the size bound evicts least-recently-stored entries."""
        small = SeriesCache(tmp_path / "small.db", max_size_bytes=25, clock=clock)
        try:
            await small.set("bea:first", "a" * 10)
            clock.advance(1)
            await small.set("bea:second", "b" * 10)
            clock.advance(1)
            await small.set("bea:third", "c" * 10)

            assert await small.get("bea:first") is None
            assert await small.get("bea:second") == "b" * 10
            assert await small.get("bea:third") == "c" * 10
        finally:
            await small.close()

    @pytest.mark.asyncio
    async def test_rewrite_refreshes_eviction_order(self, tmp_path, clock):
        small = SeriesCache(tmp_path / "small.db", max_size_bytes=25, clock=clock)
        try:
            await small.set("bea:first", "a" * 10)
            clock.advance(1)
            await small.set("bea:second", "b" * 10)
            clock.advance(1)
            await small.set("bea:first", "a" * 10)
            clock.advance(1)
            await small.set("bea:third", "c" * 10)

            assert await small.get("bea:second") is None
            assert await small.get("bea:first") is not None
        finally:
            await small.close()

    @pytest.mark.asyncio
    async def test_clear(self, cache):
        await cache.set("bea:a", "1")
        await cache.set("fred:b", "2")

        assert await cache.clear() == 2
        assert (await cache.stats()).entries == 0

    @pytest.mark.asyncio
    async def test_clear_single_source(self, cache):
        await cache.set("bea:a", "1")
        await cache.set("fred:b", "2")

        assert await cache.clear("bea") == 1
        assert await cache.get("fred:b") == "2"

    @pytest.mark.asyncio
    async def test_delete(self, cache):
        await cache.set("bea:a", "1")

        assert await cache.delete("bea:a") is True
        assert await cache.delete("bea:a") is False

    @pytest.mark.asyncio
    async def test_purge_expired(self, cache, clock):
        await cache.set("bea:old", "1", ttl=10)
        await cache.set("bea:new", "2", ttl=1000)
        clock.advance(20)

        assert await cache.purge_expired() == 1
        assert await cache.get("bea:new") == "2"

    @pytest.mark.asyncio
    async def test_stats(self, cache, clock):
        await cache.set("bea:a", "12345", ttl=10)
        await cache.set("bea:b", "123", ttl=1000)
        clock.advance(20)
        await cache.get("bea:b")
        await cache.get("bea:a")

        stats = await cache.stats()

        assert stats.entries == 2
        assert stats.expired == 1
        assert stats.size_bytes == 8
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.to_dict()["path"].endswith("cache.db")

    @pytest.mark.asyncio
    async def test_concurrent_writes_and_reads(self, cache):
        """Test that racing reads see either the old or the new payload."""
        await cache.set("bea:race", "old" * 100)

        async def write() -> None:
            await cache.set("bea:race", "new" * 100)

        results = await asyncio.gather(
            write(), *(cache.get("bea:race") for _ in range(10))
        )

        for payload in results[1:]:
            assert payload in ("old" * 100, "new" * 100)
        assert await cache.get("bea:race") == "new" * 100
