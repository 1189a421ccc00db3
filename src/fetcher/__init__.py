"""Backend HTTP access with retries and batched attribute fetching."""

from .attribute_fetcher import ATTRIBUTE_ENDPOINTS, AttributeFetcher
from .backend_client import BackendClient
from .retry_handler import RetryHandler

__all__ = ["ATTRIBUTE_ENDPOINTS", "AttributeFetcher", "BackendClient", "RetryHandler"]
