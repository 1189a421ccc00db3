"""Runtime wiring every catalog component from configuration."""

from contextlib import AsyncExitStack
from typing import Dict, Optional
from urllib.parse import urlsplit

import httpx

from src.cache.attribute_cache import AttributeCache
from src.catalog.dimensions import PrimaryArtistCuration, TaggedArtistCuration, default_strategies
from src.catalog.resolver import ArchiveQueryResolver
from src.catalog.service import CatalogService
from src.catalog.sources import CommerceFilterSource, ContentQuerySource
from src.fetcher.attribute_fetcher import AttributeFetcher
from src.fetcher.backend_client import BackendClient
from src.fetcher.http_client import AsyncHTTPClient
from src.fetcher.retry_handler import RetryHandler
from src.invalidation.gateway import InvalidationGateway
from src.invalidation.page_cache import HttpPageCache, InMemoryPageCache, PageCache
from src.models.config import BackendConfig, CatalogConfig
from src.models.data_models import ArchiveDimension, AttributeEviction
from src.monitoring.logger import StructuredLogger
from src.wantlist.reconciler import PostCommitTasks, WantlistReconciler
from src.wantlist.store import HttpWantlistStore, WantlistStore


class CatalogRuntime:
    """
    Owns one instance of every component for the lifetime of a process.

    The attribute cache is created here exactly once and handed to both the
    read path and the invalidation gateway. Use as an async context manager;
    HTTP clients are opened on enter and closed on exit.
    """

    def __init__(
        self,
        config: CatalogConfig,
        transports: Optional[Dict[str, httpx.AsyncBaseTransport]] = None,
        page_cache: Optional[PageCache] = None,
        wantlist_store: Optional[WantlistStore] = None,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Initialize runtime.

        Args:
            config: Catalog configuration
            transports: Optional httpx transports by backend name ("commerce",
                "content", "page_cache"), used to run against in-process apps
            page_cache: Overrides the page cache built from configuration
            wantlist_store: Overrides the HTTP want-list store
            logger: Overrides the logger built from configuration
        """
        self.config = config
        self.transports = transports or {}
        self.logger = logger or StructuredLogger(level=config.log_level)
        self._page_cache_override = page_cache
        self._wantlist_store_override = wantlist_store
        self._stack: Optional[AsyncExitStack] = None

        self.attribute_cache: Optional[AttributeCache] = None
        self.resolver: Optional[ArchiveQueryResolver] = None
        self.catalog: Optional[CatalogService] = None
        self.gateway: Optional[InvalidationGateway] = None
        self.page_cache: Optional[PageCache] = None
        self.reconciler: Optional[WantlistReconciler] = None

    def _retry_handler(self) -> RetryHandler:
        return RetryHandler(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
            jitter_max=self.config.retry_jitter_max,
            retryable_status_codes=self.config.retryable_status_codes,
        )

    async def _open_backend(self, backend: BackendConfig, headers: Dict[str, str]) -> BackendClient:
        http_client = AsyncHTTPClient(
            base_url=backend.url,
            headers=headers,
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
            transport=self.transports.get(backend.name),
        )
        await self._stack.enter_async_context(http_client)
        return BackendClient(backend.name, http_client, self._retry_handler(), self.logger)

    async def __aenter__(self) -> "CatalogRuntime":
        config = self.config
        self._stack = AsyncExitStack()
        await self._stack.__aenter__()
        try:
            await self._build(config)
        except BaseException:
            await self._stack.aclose()
            raise
        return self

    async def _build(self, config: CatalogConfig) -> None:
        commerce = await self._open_backend(
            config.commerce,
            {"x-publishable-api-key": config.commerce.api_key} if config.commerce.api_key else {},
        )
        content = await self._open_backend(
            config.content,
            {"authorization": f"Bearer {config.content.api_key}"} if config.content.api_key else {},
        )

        self.attribute_cache = AttributeCache(AttributeFetcher(commerce), logger=self.logger)

        curation = PrimaryArtistCuration() if config.artist_primary_only else TaggedArtistCuration()
        self.resolver = ArchiveQueryResolver(
            sources={
                "commerce": CommerceFilterSource(commerce, require_image=config.require_image),
                "content": ContentQuerySource(
                    content, dataset=config.content_dataset, require_image=config.require_image
                ),
            },
            dimension_sources={
                ArchiveDimension.parse(dimension): source
                for dimension, source in config.dimension_sources.items()
            },
            strategies=default_strategies(curation),
            page_size=config.archive_page_size,
            logger=self.logger,
        )
        self.catalog = CatalogService(self.resolver, self.attribute_cache)

        self.page_cache = self._page_cache_override or await self._build_page_cache()
        self.gateway = InvalidationGateway(
            secret=config.revalidate_secret,
            page_cache=self.page_cache,
            attribute_cache=self.attribute_cache,
            attribute_eviction=AttributeEviction(config.attribute_eviction),
            logger=self.logger,
        )

        store = self._wantlist_store_override or HttpWantlistStore(commerce)
        self.reconciler = WantlistReconciler(store, logger=self.logger)

    async def _build_page_cache(self) -> PageCache:
        if not self.config.page_purge_url:
            return InMemoryPageCache()
        parts = urlsplit(self.config.page_purge_url)
        purge_backend = await self._open_backend(
            BackendConfig(name="page_cache", url=f"{parts.scheme}://{parts.netloc}"), {}
        )
        return HttpPageCache(purge_backend, purge_path=parts.path or "/", token=self.config.page_purge_token)

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._stack:
            await self._stack.__aexit__(exc_type, exc_val, exc_tb)
            self._stack = None

    def post_commit_tasks(self) -> PostCommitTasks:
        """A fresh task queue for one order confirmation."""
        return PostCommitTasks(logger=self.logger)
