"""Secret-authenticated invalidation of rendered pages and cached attributes."""

import hmac
import time
from typing import Any, List, Optional

from src.cache.attribute_cache import AttributeCache
from src.invalidation.page_cache import PageCache
from src.models.data_models import (
    AttributeEviction,
    InvalidationEvent,
    InvalidationResult,
    InvalidationScope,
)
from src.models.errors import CatalogError, InvalidationFailed, InvalidEvent, Unauthorized
from src.monitoring.logger import StructuredLogger


ROOT_PATH = "/"
SHOP_PATH = "/shop"
TREE_MARKER = "/ (layout)"


def product_path(handle: str) -> str:
    return f"/product/{handle}"


def parse_event(payload: Any) -> Optional[InvalidationEvent]:
    """
    Build an InvalidationEvent from a ``{type, handle?}`` payload.

    An unrecognized or missing ``type`` yields None: the request is valid
    but evicts nothing.

    Raises:
        InvalidEvent: If the payload is not an object or the handle is not a string
    """
    if not isinstance(payload, dict):
        raise InvalidEvent("Body must be a JSON object")
    handle = payload.get("handle")
    if handle is not None and not isinstance(handle, str):
        raise InvalidEvent("handle must be a string")
    try:
        scope = InvalidationScope(str(payload.get("type", "")).lower())
    except ValueError:
        return None
    handle = handle.strip() if handle else None
    return InvalidationEvent(scope=scope, product_handle=handle or None)


class InvalidationGateway:
    """
    Evicts exactly the cached pages a catalog change affects.

    - product / inventory: the home page, the shop listing and, when the
      event names a handle, that product's page. Archive pages are left to
      their time-based expiry.
    - all: the whole page tree.

    Attribute cache entries are evicted according to ``attribute_eviction``.
    """

    def __init__(
        self,
        secret: str,
        page_cache: PageCache,
        attribute_cache: Optional[AttributeCache] = None,
        attribute_eviction: AttributeEviction = AttributeEviction.NONE,
        logger: Optional[StructuredLogger] = None
    ):
        self._secret = secret or ""
        self.page_cache = page_cache
        self.attribute_cache = attribute_cache
        self.attribute_eviction = attribute_eviction
        self.logger = logger

    def authenticate(self, secret: Optional[str]) -> None:
        """
        Raises:
            Unauthorized: If no server secret is configured or ``secret`` differs
        """
        if not self._secret or secret is None:
            self._reject("missing secret")
        if not hmac.compare_digest(secret.encode("utf-8"), self._secret.encode("utf-8")):
            self._reject("secret mismatch")

    def _reject(self, reason: str) -> None:
        if self.logger:
            self.logger.invalidation_rejected(reason)
        raise Unauthorized()

    async def invalidate(
        self,
        secret: Optional[str],
        event: Optional[InvalidationEvent]
    ) -> InvalidationResult:
        """
        Authenticate, then evict the paths affected by ``event``.

        Args:
            secret: Caller-supplied secret
            event: Change notification; None (unrecognized type) evicts nothing

        Returns:
            InvalidationResult listing every evicted path (possibly empty)

        Raises:
            Unauthorized: Bad secret; nothing is evicted
            InvalidationFailed: The page cache rejected an eviction
        """
        self.authenticate(secret)
        if event is None:
            return InvalidationResult(revalidated=[], timestamp=int(time.time() * 1000))

        revalidated: List[str] = []
        try:
            if event.scope in (InvalidationScope.PRODUCT, InvalidationScope.INVENTORY):
                paths = [ROOT_PATH, SHOP_PATH]
                if event.product_handle:
                    paths.append(product_path(event.product_handle))
                for path in paths:
                    await self.page_cache.evict(path)
                    revalidated.append(path)
            elif event.scope is InvalidationScope.ALL:
                await self.page_cache.evict_tree(ROOT_PATH)
                revalidated.append(TREE_MARKER)
        except CatalogError as e:
            raise InvalidationFailed(details={"evicted": revalidated, "error": str(e)}) from e

        attribute_entries = self._evict_attributes(event)

        if self.logger:
            self.logger.paths_evicted(event.scope.value, revalidated, attribute_entries)

        return InvalidationResult(
            revalidated=revalidated,
            timestamp=int(time.time() * 1000),
            attribute_entries_evicted=attribute_entries,
        )

    def _evict_attributes(self, event: InvalidationEvent) -> int:
        if self.attribute_cache is None or self.attribute_eviction is AttributeEviction.NONE:
            return 0
        if self.attribute_eviction is AttributeEviction.ALL or event.scope is InvalidationScope.ALL:
            return self.attribute_cache.invalidate()
        if event.product_handle:
            return self.attribute_cache.invalidate([event.product_handle])
        return 0
