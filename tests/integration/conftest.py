"""Fixtures wiring the runtime to in-process mock backends."""

import httpx
import pytest

from src.mock_servers.app import build_catalog, create_commerce_app, create_content_app
from src.models.config import CatalogConfig

from tests.fixtures.sample_data import ACCOUNT, SECRET


@pytest.fixture
def catalog():
    return build_catalog(120, random_seed=7)


@pytest.fixture
def commerce_app(catalog):
    first, second = catalog[0], catalog[1]
    return create_commerce_app(
        catalog,
        wantlists={ACCOUNT: [
            {"product_id": first["id"], "variant_id": "v1"},
            {"product_id": first["id"], "variant_id": None},
            {"product_id": first["id"], "variant_id": "v2"},
            {"product_id": second["id"], "variant_id": None},
        ]},
    )


@pytest.fixture
def content_app(catalog):
    return create_content_app(catalog)


@pytest.fixture
def config():
    return CatalogConfig(
        revalidate_secret=SECRET,
        max_retries=0,
        retry_base_delay=0.0,
        retry_jitter_max=0.0,
    )


@pytest.fixture
def transports(commerce_app, content_app):
    return {
        "commerce": httpx.ASGITransport(app=commerce_app),
        "content": httpx.ASGITransport(app=content_app),
    }

