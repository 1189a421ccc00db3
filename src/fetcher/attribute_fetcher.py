"""Batch retrieval of auxiliary product attributes from the commerce backend."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from src.fetcher.backend_client import BackendClient
from src.models.data_models import AttributeClass


def _coerce_stock(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value > 0
    if isinstance(value, dict):
        # {"in_stock": true} or {"inventory_quantity": 3}
        if "in_stock" in value:
            return _coerce_stock(value["in_stock"])
        if "inventory_quantity" in value:
            return _coerce_stock(value["inventory_quantity"])
    return None


def _coerce_formats(value: Any) -> Optional[tuple]:
    if isinstance(value, str):
        value = [value]
    if isinstance(value, (list, tuple)):
        formats = tuple(str(item).strip() for item in value if item is not None and str(item).strip())
        return formats
    return None


def _coerce_artist_name(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        names = [str(name).strip() for name in value if name]
        return ", ".join(names) if names else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class AttributeEndpoint:
    """Where and how one attribute class is fetched."""
    path: str
    request_key: str
    response_key: str
    coerce: Callable[[Any], Any]


ATTRIBUTE_ENDPOINTS: Dict[AttributeClass, AttributeEndpoint] = {
    AttributeClass.STOCK: AttributeEndpoint(
        path="/store/products/stock-check",
        request_key="handles",
        response_key="stock",
        coerce=_coerce_stock,
    ),
    AttributeClass.FORMATS: AttributeEndpoint(
        path="/store/products/formats",
        request_key="productIds",
        response_key="formats",
        coerce=_coerce_formats,
    ),
    AttributeClass.ARTIST_NAME: AttributeEndpoint(
        path="/store/products/artists",
        request_key="handles",
        response_key="artists",
        coerce=_coerce_artist_name,
    ),
}


class AttributeFetcher:
    """
    Fetches one attribute class for a batch of handles in a single request.

    Handles absent from the response, or whose value cannot be coerced, are
    simply missing from the returned mapping; the cache records them as
    unknown. Any transport or status failure raises BackendUnavailable.
    """

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def fetch(self, handles: Iterable[str], attribute: AttributeClass) -> Dict[str, Any]:
        """
        Fetch ``attribute`` for ``handles`` with one batch call.

        Args:
            handles: Product handles to look up
            attribute: Attribute class to fetch

        Returns:
            Mapping of handle to coerced value for handles the backend knew

        Raises:
            BackendUnavailable: If the batch request failed
        """
        endpoint = ATTRIBUTE_ENDPOINTS[attribute]
        requested = sorted(set(handles))
        if not requested:
            return {}

        data = await self.backend.post_json(endpoint.path, {endpoint.request_key: requested})
        raw_values = data.get(endpoint.response_key) or {}
        if not isinstance(raw_values, dict):
            return {}

        values = {}
        for handle in requested:
            if handle not in raw_values:
                continue
            value = endpoint.coerce(raw_values[handle])
            if value is not None:
                values[handle] = value
        return values
