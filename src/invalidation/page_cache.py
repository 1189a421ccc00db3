"""Interfaces to the external rendered-page cache."""

from typing import List, Optional, Protocol

from src.fetcher.backend_client import BackendClient


class PageCache(Protocol):
    """Path-addressed cache of rendered pages, owned by the storefront."""

    async def evict(self, path: str) -> None:
        ...

    async def evict_tree(self, root: str) -> None:
        ...


class InMemoryPageCache:
    """
    Page cache that only records what it was told to evict.

    Used for local runs and tests; ``evictions`` keeps the instructions in
    the order received.
    """

    def __init__(self):
        self.evictions: List[str] = []
        self.tree_evictions: List[str] = []

    async def evict(self, path: str) -> None:
        self.evictions.append(path)

    async def evict_tree(self, root: str) -> None:
        self.tree_evictions.append(root)


class HttpPageCache:
    """Sends eviction instructions to the storefront's purge endpoint."""

    def __init__(self, backend: BackendClient, purge_path: str = "", token: Optional[str] = None):
        self.backend = backend
        self.purge_path = purge_path
        self.token = token

    def _headers(self):
        return {"authorization": f"Bearer {self.token}"} if self.token else None

    async def evict(self, path: str) -> None:
        await self.backend.post(
            self.purge_path, {"paths": [path], "tree": False}, headers=self._headers()
        )

    async def evict_tree(self, root: str) -> None:
        await self.backend.post(
            self.purge_path, {"paths": [root], "tree": True}, headers=self._headers()
        )
