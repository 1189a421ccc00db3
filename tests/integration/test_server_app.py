"""Integration tests for the HTTP app against the mock backends."""

import httpx
import pytest
from fastapi.testclient import TestClient

from src.invalidation.page_cache import InMemoryPageCache
from src.mock_servers.app import create_commerce_app
from src.models.errors import BackendUnavailable
from src.pipeline.orchestrator import CatalogRuntime
from src.server.app import create_app
from tests.fixtures.sample_data import ACCOUNT, SECRET, expected_handles


class RefusingPageCache(InMemoryPageCache):
    async def evict(self, path):
        raise BackendUnavailable("page_cache", "purge refused")


@pytest.fixture
def page_cache():
    return InMemoryPageCache()


@pytest.fixture
def client(config, transports, page_cache):
    runtime = CatalogRuntime(config, transports=transports, page_cache=page_cache)
    with TestClient(create_app(runtime=runtime)) as test_client:
        yield test_client


@pytest.mark.integration
class TestRevalidateRoute:

    def test_product_event(self, client, page_cache):
        response = client.post(
            "/api/revalidate",
            json={"type": "product", "handle": "blue-lines"},
            headers={"x-revalidate-secret": SECRET},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["revalidated"] == ["/", "/shop", "/product/blue-lines"]
        assert isinstance(body["timestamp"], int)
        assert page_cache.evictions == ["/", "/shop", "/product/blue-lines"]

    def test_all_event(self, client, page_cache):
        response = client.post("/api/revalidate", json={"type": "all"}, headers={"x-revalidate-secret": SECRET})

        assert response.json()["revalidated"] == ["/ (layout)"]
        assert page_cache.tree_evictions == ["/"]

    def test_wrong_secret(self, client, page_cache):
        response = client.post("/api/revalidate", json={"type": "all"}, headers={"x-revalidate-secret": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid secret"}
        assert page_cache.tree_evictions == []

    def test_missing_secret(self, client):
        response = client.post("/api/revalidate", json={"type": "all"})
        assert response.status_code == 401

    def test_malformed_body(self, client, page_cache):
        response = client.post(
            "/api/revalidate",
            content=b"{not json",
            headers={"x-revalidate-secret": SECRET, "content-type": "application/json"},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Revalidation failed"}
        assert page_cache.evictions == []

    def test_non_object_body(self, client):
        response = client.post("/api/revalidate", json=["all"], headers={"x-revalidate-secret": SECRET})
        assert response.status_code == 400

    def test_unknown_event_type_evicts_nothing(self, client, page_cache):
        response = client.post(
            "/api/revalidate", json={"type": "collection"}, headers={"x-revalidate-secret": SECRET}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["revalidated"] == []
        assert isinstance(body["timestamp"], int)
        assert page_cache.evictions == []
        assert page_cache.tree_evictions == []

    def test_page_cache_failure(self, config, transports):
        runtime = CatalogRuntime(config, transports=transports, page_cache=RefusingPageCache())
        with TestClient(create_app(runtime=runtime)) as test_client:
            response = test_client.post(
                "/api/revalidate", json={"type": "product"}, headers={"x-revalidate-secret": SECRET}
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Revalidation failed"}


@pytest.mark.integration
class TestArchiveRoute:

    def test_artist_archive_is_enriched(self, client, catalog):
        handles, total = expected_handles(catalog, "artist", "sade", primary_only=True)

        response = client.get("/api/archive/artist/sade")

        assert response.status_code == 200
        body = response.json()
        assert [p["handle"] for p in body["products"]] == handles
        assert body["total_count"] == total
        assert body["display_name"] == "Sade"
        assert body["error"] is None
        by_handle = {p["handle"]: p for p in catalog}
        for product in body["products"]:
            source = by_handle[product["handle"]]
            assert product["in_stock"] == source["in_stock"]
            assert product["formats"] == source["format"]
            assert product["artist_name"] == ", ".join(source["artist"])

    def test_tag_archive_from_content_backend(self, client, catalog):
        handles, total = expected_handles(catalog, "tags", "jazz")

        body = client.get("/api/archive/tag/jazz").json()

        assert [p["handle"] for p in body["products"]] == handles
        assert body["total_count"] == total
        assert all(p["source"] == "content" for p in body["products"])

    def test_sorted_by_price(self, client):
        body = client.get("/api/archive/format/lp", params={"sortBy": "PriceAsc"}).json()

        prices = [p["price"] for p in body["products"]]
        assert prices == sorted(prices)

    def test_page_past_end(self, client):
        body = client.get("/api/archive/tag/jazz", params={"page": 50}).json()

        assert body["products"] == []
        assert body["has_next_page"] is False
        assert body["page"] == 50

    def test_unknown_dimension_is_empty_page(self, client):
        response = client.get("/api/archive/label/warp")

        assert response.status_code == 200
        body = response.json()
        assert body["products"] == []
        assert body["total_count"] == 0
        assert body["has_next_page"] is False
        assert body["error"] is None

    def test_backend_outage_returns_empty_page(self, config, catalog, transports):
        transports["commerce"] = httpx.ASGITransport(
            app=create_commerce_app(catalog, failing_paths={"/store/products/filter"})
        )
        runtime = CatalogRuntime(config, transports=transports, page_cache=InMemoryPageCache())
        with TestClient(create_app(runtime=runtime)) as test_client:
            response = test_client.get("/api/archive/artist/sade")

        assert response.status_code == 200
        body = response.json()
        assert body["products"] == []
        assert body["total_count"] == 0
        assert "503" in body["error"]


@pytest.mark.integration
class TestLookupAndOrderRoutes:

    def test_stock_lookup(self, client, catalog):
        handle = catalog[0]["handle"]

        response = client.get("/api/products/stock", params={"handles": f"{handle},missing-record"})

        assert response.status_code == 200
        assert response.json() == {"stock": {handle: catalog[0]["in_stock"]}}

    def test_unknown_attribute(self, client):
        assert client.get("/api/products/colour", params={"handles": "a"}).status_code == 404

    def test_order_confirmed_cleans_wantlist(self, client, catalog, commerce_app):
        response = client.post(
            "/api/orders/confirmed",
            json={"items": [{"product_id": catalog[0]["id"], "variant_id": "v1"}]},
            headers={"authorization": f"Bearer {ACCOUNT}"},
        )

        assert response.status_code == 202
        assert response.json() == {"queued": 1}
        assert commerce_app.state.wantlists[ACCOUNT] == [
            {"product_id": catalog[0]["id"], "variant_id": "v2"},
            {"product_id": catalog[1]["id"], "variant_id": None},
        ]

    def test_order_confirmed_requires_login(self, client):
        response = client.post("/api/orders/confirmed", json={"items": []})
        assert response.status_code == 401

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["sources"] == {"artist": "commerce", "format": "commerce", "tag": "content"}
        assert set(body["attribute_cache"]) == {"stock", "formats", "artist_name"}
