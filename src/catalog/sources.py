"""Catalog sources that can answer an archive query."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol, Tuple

from src.catalog.dimensions import ArchiveFilter
from src.fetcher.backend_client import BackendClient
from src.models.data_models import ArchiveDimension, ArchiveQuery, Product, SortKey
from src.processor.normalizer import normalize_batch


@dataclass
class SourcePage:
    """One page as a source returned it, already normalized."""
    products: List[Product]
    total: int
    display_name: str


class CatalogSource(Protocol):
    name: str

    async def fetch_page(self, archive_filter: ArchiveFilter, query: ArchiveQuery) -> SourcePage:
        ...


# Filter endpoint vocabulary: genre|format|artist|label
COMMERCE_FILTER_TYPES: Dict[ArchiveDimension, str] = {
    ArchiveDimension.ARTIST: "artist",
    ArchiveDimension.FORMAT: "format",
    ArchiveDimension.TAG: "genre",
}

COMMERCE_SORTS: Dict[SortKey, Tuple[str, str]] = {
    SortKey.LATEST: ("created_at", "desc"),
    SortKey.PRICE_ASC: ("price_usd", "asc"),
    SortKey.PRICE_DESC: ("price_usd", "desc"),
    SortKey.TITLE_ASC: ("title", "asc"),
    SortKey.TITLE_DESC: ("title", "desc"),
    SortKey.ARTIST_ASC: ("artist", "asc"),
    SortKey.ARTIST_DESC: ("artist", "desc"),
}

# _id breaks ties so equal sort values page deterministically
CONTENT_SORTS: Dict[SortKey, str] = {
    SortKey.LATEST: "_createdAt desc, _id asc",
    SortKey.PRICE_ASC: "price asc, _id asc",
    SortKey.PRICE_DESC: "price desc, _id asc",
    SortKey.TITLE_ASC: "lower(title) asc, _id asc",
    SortKey.TITLE_DESC: "lower(title) desc, _id asc",
    SortKey.ARTIST_ASC: "lower(artist[0]) asc, _id asc",
    SortKey.ARTIST_DESC: "lower(artist[0]) desc, _id asc",
}


def _to_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _page_total(value: Any, query: ArchiveQuery, products: List[Product]) -> int:
    """Reported total, never below what this page shows to exist."""
    total = _to_int(value)
    if products:
        total = max(total, query.offset + len(products))
    return total


class CommerceFilterSource:
    """Archive pages from the commerce backend's ``/store/products/filter`` endpoint."""

    PATH = "/store/products/filter"

    def __init__(self, backend: BackendClient, require_image: bool = True):
        self.backend = backend
        self.name = backend.name
        self.require_image = require_image

    def build_params(self, archive_filter: ArchiveFilter, query: ArchiveQuery) -> Dict[str, Any]:
        sort, order = COMMERCE_SORTS[query.sort_key]
        params = {
            "type": COMMERCE_FILTER_TYPES[archive_filter.dimension],
            "value": archive_filter.value,
            "limit": query.page_size,
            "offset": query.offset,
            "sort": sort,
            "order": order,
            "requireImage": str(self.require_image).lower(),
        }
        params.update(archive_filter.commerce_params)
        return params

    async def fetch_page(self, archive_filter: ArchiveFilter, query: ArchiveQuery) -> SourcePage:
        data = await self.backend.get_json(self.PATH, params=self.build_params(archive_filter, query))
        filter_info = data.get("filter") if isinstance(data.get("filter"), dict) else {}
        total = data.get("total")
        if total is None:
            total = data.get("count")
        products = normalize_batch(data.get("products") or [], self.name)
        return SourcePage(
            products=products,
            total=_page_total(total, query, products),
            display_name=filter_info.get("display_name") or archive_filter.display_name,
        )


class ContentQuerySource:
    """Archive pages from the content backend via a GROQ query."""

    BASE_FILTER = '_type == "product" && !(_id in path("drafts.**")) && defined(swellProductId)'
    FIELDS = (
        "_id, _createdAt, title, artist, format, tags, price, swellCurrency, "
        "swellProductId, swellSlug, \"slug\": slug.current, "
        "\"imageUrl\": mainImage.asset->url"
    )

    def __init__(self, backend: BackendClient, dataset: str = "production", require_image: bool = True):
        self.backend = backend
        self.name = backend.name
        self.dataset = dataset
        self.require_image = require_image

    def build_query(self, archive_filter: ArchiveFilter, query: ArchiveQuery) -> str:
        conditions = [self.BASE_FILTER]
        if self.require_image:
            conditions.append("defined(mainImage.asset)")
        if archive_filter.content_condition:
            conditions.append(archive_filter.content_condition)
        where = " && ".join(conditions)
        start = query.offset
        end = start + query.page_size
        return (
            f"{{\"products\": *[{where}] | order({CONTENT_SORTS[query.sort_key]})"
            f" [{start}...{end}] {{{self.FIELDS}}},"
            f" \"total\": count(*[{where}])}}"
        )

    async def fetch_page(self, archive_filter: ArchiveFilter, query: ArchiveQuery) -> SourcePage:
        params = {
            "query": self.build_query(archive_filter, query),
            # GROQ parameters are JSON-encoded and $-prefixed
            "$variants": json.dumps(archive_filter.variants),
        }
        data = await self.backend.get_json(f"/data/query/{self.dataset}", params=params)
        result = data.get("result") if isinstance(data.get("result"), dict) else {}
        products = normalize_batch(result.get("products") or [], self.name)
        return SourcePage(
            products=products,
            total=_page_total(result.get("total"), query, products),
            display_name=archive_filter.display_name,
        )
