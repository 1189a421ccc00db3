"""Pytest configuration and shared fixtures."""

import random

import httpx
import pytest

from src.fetcher.backend_client import BackendClient
from src.fetcher.http_client import AsyncHTTPClient
from src.fetcher.retry_handler import RetryHandler


@pytest.fixture(scope="session")
def deterministic_seed():
    """Set a fixed random seed for deterministic test results."""
    random.seed(42)
    return 42


@pytest.fixture
def sample_config():
    """Provide a sample configuration for testing."""
    from src.models.config import CatalogConfig

    return CatalogConfig(
        revalidate_secret="s3cret",
        max_retries=0,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter_max=0.0,
        connect_timeout=3.0,
        read_timeout=8.0,
    )


@pytest.fixture
def backend_factory():
    """
    Build a BackendClient whose requests are answered by ``handler``.

    The underlying httpx client is attached directly, so no ``async with``
    is needed in tests.
    """
    def make(handler, name="commerce", max_retries=0, base_url="http://backend.test"):
        http_client = AsyncHTTPClient(base_url=base_url)
        http_client._client = httpx.AsyncClient(
            base_url=base_url, transport=httpx.MockTransport(handler)
        )
        retry_handler = RetryHandler(max_retries=max_retries, base_delay=0.0, max_delay=0.0, jitter_max=0.0)
        return BackendClient(name, http_client, retry_handler)

    return make
