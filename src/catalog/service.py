"""Read path: resolve an archive page and enrich it with cached attributes."""

import asyncio
from typing import List, Optional, Union

from src.cache.attribute_cache import AttributeCache
from src.catalog.resolver import ArchiveQueryResolver
from src.models.data_models import ArchiveDimension, ArchivePage, AttributeClass, Product, SortKey


class CatalogService:
    """Archive listings with stock, formats and artist names filled in."""

    def __init__(self, resolver: ArchiveQueryResolver, attribute_cache: AttributeCache):
        self.resolver = resolver
        self.attribute_cache = attribute_cache

    async def archive_page(
        self,
        dimension: Union[ArchiveDimension, str],
        slug: str,
        page: int = 1,
        sort_key: Union[SortKey, str, None] = None
    ) -> ArchivePage:
        archive_page = await self.resolver.resolve(dimension, slug, page, sort_key)
        if archive_page.products:
            await self.enrich(archive_page.products)
        return archive_page

    async def enrich(self, products: List[Product]) -> List[Product]:
        """
        Fill the attribute fields of ``products`` in place.

        The three attribute classes are looked up concurrently, each with at
        most one batch request for its uncached handles. Attributes the cache
        could not resolve stay None.
        """
        handles = [p.handle for p in products]
        stock, formats, artists = await asyncio.gather(
            self.attribute_cache.get(handles, AttributeClass.STOCK),
            self.attribute_cache.get(handles, AttributeClass.FORMATS),
            self.attribute_cache.get(handles, AttributeClass.ARTIST_NAME),
        )
        for product in products:
            product.in_stock = stock.get(product.handle)
            product_formats = formats.get(product.handle)
            product.formats = list(product_formats) if product_formats is not None else None
            product.artist_name = artists.get(product.handle)
        return products

    async def attributes_for(self, handles: List[str], attribute: AttributeClass) -> dict:
        """Lookup endpoint helper: one attribute class for arbitrary handles."""
        values = await self.attribute_cache.get(handles, attribute)
        return {h: (list(v) if isinstance(v, tuple) else v) for h, v in values.items()}

    def describe(self, dimension: Optional[ArchiveDimension] = None) -> dict:
        """Which source answers each dimension."""
        dimensions = [dimension] if dimension else list(ArchiveDimension)
        return {d.value: self.resolver.source_for(d).name for d in dimensions}
