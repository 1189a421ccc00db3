"""Unit tests for the attribute cache."""

import asyncio

import pytest

from src.cache.attribute_cache import UNKNOWN, AttributeCache
from src.models.data_models import AttributeClass
from src.models.errors import BackendUnavailable


class FakeFetcher:
    """Records every batch and answers from a fixed table."""

    def __init__(self, values=None, fail=False, delay=0.0):
        self.values = values or {}
        self.fail = fail
        self.delay = delay
        self.calls = []

    async def fetch(self, handles, attribute):
        self.calls.append((attribute, sorted(handles)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise BackendUnavailable("commerce", "down")
        table = self.values.get(attribute, {})
        return {h: table[h] for h in handles if h in table}


STOCK = {AttributeClass.STOCK: {"a": True, "b": False, "c": True}}


class TestAttributeCache:

    @pytest.mark.asyncio
    async def test_first_lookup_fetches_once(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        result = await cache.get(["a", "b"], AttributeClass.STOCK)

        assert result == {"a": True, "b": False}
        assert fetcher.calls == [(AttributeClass.STOCK, ["a", "b"])]

    @pytest.mark.asyncio
    async def test_second_lookup_fetches_only_new_handles(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        await cache.get(["a", "b"], AttributeClass.STOCK)
        result = await cache.get(["b", "c"], AttributeClass.STOCK)

        assert result == {"b": False, "c": True}
        assert fetcher.calls[-1] == (AttributeClass.STOCK, ["c"])
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_fully_cached_lookup_makes_no_request(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        await cache.get(["a"], AttributeClass.STOCK)
        await cache.get(["a"], AttributeClass.STOCK)

        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_handle_without_value_is_recorded_as_unknown(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        result = await cache.get(["zzz"], AttributeClass.STOCK)
        assert result == {"zzz": None}
        assert cache.peek("zzz", AttributeClass.STOCK) is UNKNOWN

        await cache.get(["zzz"], AttributeClass.STOCK)
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self):
        fetcher = FakeFetcher(STOCK, fail=True)
        cache = AttributeCache(fetcher)

        result = await cache.get(["a"], AttributeClass.STOCK)
        assert result == {"a": None}
        assert cache.peek("a", AttributeClass.STOCK) is None

        fetcher.fail = False
        result = await cache.get(["a"], AttributeClass.STOCK)
        assert result == {"a": True}
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_blank_handles_are_ignored(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        result = await cache.get(["", "  ", "a"], AttributeClass.STOCK)

        assert result == {"a": True}
        assert fetcher.calls == [(AttributeClass.STOCK, ["a"])]

    @pytest.mark.asyncio
    async def test_empty_request_makes_no_call(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        assert await cache.get([], AttributeClass.STOCK) == {}
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_attribute_classes_are_separate_namespaces(self):
        fetcher = FakeFetcher({
            AttributeClass.STOCK: {"a": True},
            AttributeClass.ARTIST_NAME: {"a": "Sade"},
        })
        cache = AttributeCache(fetcher)

        await cache.get(["a"], AttributeClass.STOCK)
        result = await cache.get(["a"], AttributeClass.ARTIST_NAME)

        assert result == {"a": "Sade"}
        assert [call[0] for call in fetcher.calls] == [AttributeClass.STOCK, AttributeClass.ARTIST_NAME]

    @pytest.mark.asyncio
    async def test_concurrent_lookups_converge(self):
        fetcher = FakeFetcher(STOCK, delay=0.01)
        cache = AttributeCache(fetcher)

        first, second = await asyncio.gather(
            cache.get(["a", "b"], AttributeClass.STOCK),
            cache.get(["b", "c"], AttributeClass.STOCK),
        )

        assert first == {"a": True, "b": False}
        assert second == {"b": False, "c": True}
        assert cache.peek("b", AttributeClass.STOCK) is False
        assert await cache.get(["a", "b", "c"], AttributeClass.STOCK) == {"a": True, "b": False, "c": True}
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_invalidation_during_fetch_keeps_earlier_hits(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)
        await cache.get(["a"], AttributeClass.STOCK)

        async def fetch_and_invalidate(handles, attribute):
            cache.invalidate(["a"])
            return {h: STOCK[attribute][h] for h in handles}

        fetcher.fetch = fetch_and_invalidate
        result = await cache.get(["a", "c"], AttributeClass.STOCK)

        assert result == {"a": True, "c": True}
        assert cache.peek("a", AttributeClass.STOCK) is None

    @pytest.mark.asyncio
    async def test_invalidate_handles(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)
        await cache.get(["a", "b"], AttributeClass.STOCK)

        removed = cache.invalidate(["a"])

        assert removed == 1
        assert cache.peek("a", AttributeClass.STOCK) is None
        assert cache.peek("b", AttributeClass.STOCK) is False

        await cache.get(["a"], AttributeClass.STOCK)
        assert fetcher.calls[-1] == (AttributeClass.STOCK, ["a"])

    @pytest.mark.asyncio
    async def test_invalidate_everything(self):
        fetcher = FakeFetcher({**STOCK, AttributeClass.FORMATS: {"a": ("LP",)}})
        cache = AttributeCache(fetcher)
        await cache.get(["a", "b"], AttributeClass.STOCK)
        await cache.get(["a"], AttributeClass.FORMATS)

        assert cache.invalidate() == 3
        assert cache.stats()["stock"]["size"] == 0
        assert cache.stats()["formats"]["size"] == 0

    @pytest.mark.asyncio
    async def test_stats_count_hits_misses_and_failures(self):
        fetcher = FakeFetcher(STOCK)
        cache = AttributeCache(fetcher)

        await cache.get(["a", "b"], AttributeClass.STOCK)
        await cache.get(["a", "c"], AttributeClass.STOCK)
        fetcher.fail = True
        await cache.get(["d"], AttributeClass.STOCK)

        stats = cache.stats()["stock"]
        assert stats["hits"] == 1
        assert stats["misses"] == 4
        assert stats["fetches"] == 3
        assert stats["failures"] == 1
        assert stats["size"] == 3


def test_unknown_is_a_falsy_singleton():
    assert not UNKNOWN
    assert type(UNKNOWN)() is UNKNOWN
    assert repr(UNKNOWN) == "UNKNOWN"
