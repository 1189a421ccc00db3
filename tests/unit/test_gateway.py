"""Unit tests for the invalidation gateway and page caches."""

import json

import httpx
import pytest

from src.cache.attribute_cache import AttributeCache
from src.invalidation.gateway import TREE_MARKER, InvalidationGateway, parse_event
from src.invalidation.page_cache import HttpPageCache, InMemoryPageCache
from src.models.data_models import AttributeClass, AttributeEviction, InvalidationEvent, InvalidationScope
from src.models.errors import BackendUnavailable, InvalidationFailed, InvalidEvent, Unauthorized


SECRET = "s3cret"


class StockFetcher:
    async def fetch(self, handles, attribute):
        return {h: True for h in handles}


class FailingPageCache(InMemoryPageCache):
    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on

    async def evict(self, path):
        if path == self.fail_on:
            raise BackendUnavailable("page_cache", "purge refused")
        await super().evict(path)


async def _warm_cache(*handles):
    cache = AttributeCache(StockFetcher())
    await cache.get(handles, AttributeClass.STOCK)
    return cache


class TestParseEvent:

    def test_product_with_handle(self):
        event = parse_event({"type": "product", "handle": " blue-lines "})
        assert event == InvalidationEvent(InvalidationScope.PRODUCT, "blue-lines")

    def test_type_is_case_insensitive(self):
        assert parse_event({"type": "ALL"}).scope is InvalidationScope.ALL

    def test_blank_handle_becomes_none(self):
        assert parse_event({"type": "inventory", "handle": ""}).product_handle is None

    @pytest.mark.parametrize("payload", [{"type": "collection"}, {}, {"type": None, "handle": "x"}])
    def test_unrecognized_type_is_no_event(self, payload):
        assert parse_event(payload) is None

    @pytest.mark.parametrize("payload", [[], "product", {"type": "product", "handle": 3}])
    def test_invalid_payloads(self, payload):
        with pytest.raises(InvalidEvent):
            parse_event(payload)


class TestInvalidationGateway:

    @pytest.mark.asyncio
    async def test_product_with_handle_evicts_three_paths(self):
        page_cache = InMemoryPageCache()
        gateway = InvalidationGateway(SECRET, page_cache)

        result = await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.PRODUCT, "blue-lines"))

        assert result.revalidated == ["/", "/shop", "/product/blue-lines"]
        assert page_cache.evictions == ["/", "/shop", "/product/blue-lines"]
        assert page_cache.tree_evictions == []
        assert result.timestamp > 0

    @pytest.mark.asyncio
    async def test_inventory_without_handle(self):
        page_cache = InMemoryPageCache()
        gateway = InvalidationGateway(SECRET, page_cache)

        result = await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.INVENTORY))

        assert result.revalidated == ["/", "/shop"]

    @pytest.mark.asyncio
    async def test_all_evicts_page_tree(self):
        page_cache = InMemoryPageCache()
        gateway = InvalidationGateway(SECRET, page_cache)

        result = await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.ALL))

        assert result.revalidated == [TREE_MARKER]
        assert page_cache.tree_evictions == ["/"]
        assert page_cache.evictions == []

    @pytest.mark.asyncio
    async def test_no_event_evicts_nothing(self):
        page_cache = InMemoryPageCache()
        cache = await _warm_cache("a")
        gateway = InvalidationGateway(SECRET, page_cache, cache, AttributeEviction.ALL)

        result = await gateway.invalidate(SECRET, None)

        assert result.revalidated == []
        assert result.timestamp > 0
        assert page_cache.evictions == []
        assert page_cache.tree_evictions == []
        assert cache.peek("a", AttributeClass.STOCK) is True

    @pytest.mark.asyncio
    async def test_no_event_still_needs_secret(self):
        with pytest.raises(Unauthorized):
            await InvalidationGateway(SECRET, InMemoryPageCache()).invalidate("wrong", None)

    @pytest.mark.asyncio
    async def test_wrong_secret_evicts_nothing(self):
        page_cache = InMemoryPageCache()
        gateway = InvalidationGateway(SECRET, page_cache)

        with pytest.raises(Unauthorized):
            await gateway.invalidate("wrong", InvalidationEvent(InvalidationScope.ALL))

        assert page_cache.evictions == []
        assert page_cache.tree_evictions == []

    @pytest.mark.asyncio
    async def test_missing_secret_rejected(self):
        gateway = InvalidationGateway(SECRET, InMemoryPageCache())
        with pytest.raises(Unauthorized):
            await gateway.invalidate(None, InvalidationEvent(InvalidationScope.PRODUCT))

    @pytest.mark.asyncio
    async def test_unconfigured_secret_rejects_everything(self):
        gateway = InvalidationGateway("", InMemoryPageCache())
        with pytest.raises(Unauthorized):
            await gateway.invalidate("", InvalidationEvent(InvalidationScope.PRODUCT))

    @pytest.mark.asyncio
    async def test_page_cache_failure_raises_invalidation_failed(self):
        page_cache = FailingPageCache(fail_on="/shop")
        gateway = InvalidationGateway(SECRET, page_cache)

        with pytest.raises(InvalidationFailed) as exc_info:
            await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.PRODUCT, "x"))

        assert exc_info.value.details["evicted"] == ["/"]

    @pytest.mark.asyncio
    async def test_attribute_cache_untouched_by_default(self):
        cache = await _warm_cache("a", "b")
        gateway = InvalidationGateway(SECRET, InMemoryPageCache(), attribute_cache=cache)

        result = await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.ALL))

        assert result.attribute_entries_evicted == 0
        assert cache.peek("a", AttributeClass.STOCK) is True

    @pytest.mark.asyncio
    async def test_handle_eviction_drops_only_named_handle(self):
        cache = await _warm_cache("a", "b")
        gateway = InvalidationGateway(
            SECRET, InMemoryPageCache(), attribute_cache=cache, attribute_eviction=AttributeEviction.HANDLE
        )

        result = await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.INVENTORY, "a"))

        assert result.attribute_entries_evicted == 1
        assert cache.peek("a", AttributeClass.STOCK) is None
        assert cache.peek("b", AttributeClass.STOCK) is True

    @pytest.mark.asyncio
    async def test_handle_eviction_with_all_scope_clears_cache(self):
        cache = await _warm_cache("a", "b")
        gateway = InvalidationGateway(
            SECRET, InMemoryPageCache(), attribute_cache=cache, attribute_eviction=AttributeEviction.HANDLE
        )

        result = await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.ALL))

        assert result.attribute_entries_evicted == 2

    @pytest.mark.asyncio
    async def test_all_eviction_clears_cache_on_any_event(self):
        cache = await _warm_cache("a", "b")
        gateway = InvalidationGateway(
            SECRET, InMemoryPageCache(), attribute_cache=cache, attribute_eviction=AttributeEviction.ALL
        )

        await gateway.invalidate(SECRET, InvalidationEvent(InvalidationScope.PRODUCT))

        assert cache.stats()["stock"]["size"] == 0


class TestHttpPageCache:

    @pytest.mark.asyncio
    async def test_purge_requests(self, backend_factory):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        page_cache = HttpPageCache(backend_factory(handler, name="page_cache"), purge_path="/purge", token="tok")
        await page_cache.evict("/shop")
        await page_cache.evict_tree("/")

        assert [json.loads(r.content) for r in seen] == [
            {"paths": ["/shop"], "tree": False},
            {"paths": ["/"], "tree": True},
        ]
        assert seen[0].url.path == "/purge"
        assert seen[0].headers["authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_purge_failure_raises(self, backend_factory):
        page_cache = HttpPageCache(backend_factory(lambda r: httpx.Response(500), name="page_cache"), "/purge")
        with pytest.raises(BackendUnavailable):
            await page_cache.evict("/")
