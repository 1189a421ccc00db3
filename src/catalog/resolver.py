"""Archive query resolution against the catalog source owning each dimension."""

from typing import Dict, Optional, Union

from src.catalog.dimensions import DimensionStrategy, default_strategies
from src.catalog.sources import CatalogSource
from src.models.data_models import (
    ARCHIVE_PAGE_SIZE,
    ArchiveDimension,
    ArchivePage,
    ArchiveQuery,
    SortKey,
)
from src.models.errors import BackendUnavailable
from src.monitoring.logger import StructuredLogger


class ArchiveQueryResolver:
    """
    Resolves (dimension, slug, page, sort key) into one page of products.

    Responsibilities:
    - Pick the strategy for the dimension and build its filter
    - Send exactly one query to the source that owns the dimension
    - Compute pagination metadata from the source's total
    - Turn backend failures into an empty page carrying an error message
    """

    def __init__(
        self,
        sources: Dict[str, CatalogSource],
        dimension_sources: Dict[ArchiveDimension, str],
        strategies: Optional[Dict[ArchiveDimension, DimensionStrategy]] = None,
        page_size: int = ARCHIVE_PAGE_SIZE,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Initialize resolver.

        Args:
            sources: Catalog sources by name
            dimension_sources: Name of the source owning each dimension
            strategies: Query strategy per dimension (defaults to the built-in set)
            page_size: Products per page, fixed for every archive
            logger: Optional structured logger

        Raises:
            ValueError: If a dimension has no strategy or no known source
        """
        self.sources = sources
        self.strategies = strategies or default_strategies()
        self.page_size = page_size
        self.logger = logger

        self._routes: Dict[ArchiveDimension, CatalogSource] = {}
        for dimension in ArchiveDimension:
            if dimension not in self.strategies:
                raise ValueError(f"No archive strategy for dimension: {dimension.value}")
            source_name = dimension_sources.get(dimension)
            if source_name not in sources:
                raise ValueError(f"No catalog source {source_name!r} for dimension: {dimension.value}")
            self._routes[dimension] = sources[source_name]

    def source_for(self, dimension: ArchiveDimension) -> CatalogSource:
        return self._routes[dimension]

    async def resolve(
        self,
        dimension: Union[ArchiveDimension, str],
        slug: str,
        page: int = 1,
        sort_key: Union[SortKey, str, None] = None
    ) -> ArchivePage:
        """
        Resolve one archive page. Never raises into the caller.

        Args:
            dimension: Archive dimension or its name
            slug: Artist, format or tag slug
            page: 1-indexed page; values below 1 are treated as 1
            sort_key: Sort key or its name; unknown values mean LATEST

        Returns:
            ArchivePage; ``error`` is set when the backend failed. An unknown
            dimension or a blank slug gives an empty page without an error.
        """
        page = max(1, int(page or 1))
        if not isinstance(dimension, ArchiveDimension):
            try:
                dimension = ArchiveDimension.parse(dimension)
            except ValueError:
                return ArchivePage(
                    products=[], total_count=0, has_next_page=False, page=page, page_size=self.page_size
                )
        if not isinstance(sort_key, SortKey):
            sort_key = SortKey.parse(sort_key)

        slug = (slug or "").strip().lower()
        query = ArchiveQuery(
            dimension=dimension,
            slug=slug,
            page=page,
            sort_key=sort_key,
            page_size=self.page_size,
        )

        archive_filter = self.strategies[dimension].build(slug)
        if not slug:
            return ArchivePage.empty(query)

        source = self._routes[dimension]
        try:
            source_page = await source.fetch_page(archive_filter, query)
        except BackendUnavailable as e:
            if self.logger:
                self.logger.archive_error(dimension.value, slug, query.page, str(e))
            return ArchivePage.empty(query, display_name=archive_filter.display_name, error=str(e))

        products = source_page.products
        if query.offset >= source_page.total:
            # Past the last page
            products = []

        if self.logger:
            self.logger.archive_resolved(
                dimension.value, slug, query.page, source.name, len(products), source_page.total
            )

        return ArchivePage(
            products=products,
            total_count=source_page.total,
            has_next_page=query.offset + query.page_size < source_page.total,
            page=query.page,
            page_size=query.page_size,
            display_name=source_page.display_name,
        )
