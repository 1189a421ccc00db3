"""Process-local cache of auxiliary product attributes.

One namespace per attribute class, keyed by product handle. The first
lookup of a handle triggers a single batch fetch for every uncached handle
in the request; afterwards the handle is served from memory until it is
explicitly invalidated.

A handle the backend answered for without a value is stored as ``UNKNOWN``
so it is not asked for again, while a failed fetch stores nothing and the
next lookup retries.

There is no lock. Slots are only ever filled with immutable values, so two
callers racing to fill the same cold handle both write the same answer.
Nothing is written until a fetch returns, which keeps a cancelled or timed
out lookup from leaving partial state behind.
"""

import time
from typing import Any, Dict, Iterable, Optional

from src.fetcher.attribute_fetcher import AttributeFetcher
from src.models.data_models import AttributeClass, CacheStats
from src.models.errors import BackendUnavailable
from src.monitoring.logger import StructuredLogger


class _Unknown:
    """Marker for "asked, backend had no value"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN = _Unknown()


class AttributeCache:
    """Attribute values per (attribute class, handle)."""

    def __init__(self, fetcher: AttributeFetcher, logger: Optional[StructuredLogger] = None):
        self.fetcher = fetcher
        self.logger = logger
        self._entries: Dict[AttributeClass, Dict[str, Any]] = {cls: {} for cls in AttributeClass}
        self._stats: Dict[AttributeClass, CacheStats] = {cls: CacheStats() for cls in AttributeClass}

    async def get(self, handles: Iterable[str], attribute: AttributeClass) -> Dict[str, Any]:
        """
        Return ``attribute`` for every handle, fetching the uncached ones in one batch.

        Handles with no known value map to ``None``. Never raises on backend
        failure; the affected handles come back as ``None`` and stay uncached.

        Args:
            handles: Product handles; blanks are ignored
            attribute: Attribute class to look up

        Returns:
            Mapping containing exactly the requested non-blank handles
        """
        requested = {h for h in handles if h and h.strip()}
        entries = self._entries[attribute]
        stats = self._stats[attribute]

        hits = {h: entries[h] for h in requested if h in entries}
        uncached = requested - hits.keys()
        stats.hits += len(hits)
        stats.misses += len(uncached)

        if self.logger:
            self.logger.attribute_lookup(attribute.value, len(requested), len(hits))

        fetched: Dict[str, Any] = {}
        if uncached:
            fetched = await self._fill(uncached, attribute)

        # Hits were read before the await; invalidation meanwhile does not blank them
        values = {**hits, **fetched}
        return {handle: None if values[handle] is UNKNOWN else values[handle] for handle in requested}

    async def _fill(self, handles: set, attribute: AttributeClass) -> Dict[str, Any]:
        stats = self._stats[attribute]
        stats.fetches += 1
        start = time.monotonic()
        try:
            values = await self.fetcher.fetch(handles, attribute)
        except BackendUnavailable as e:
            stats.failures += 1
            if self.logger:
                self.logger.attribute_fetch_error(attribute.value, len(handles), str(e))
            return {handle: UNKNOWN for handle in handles}

        filled = {handle: values.get(handle, UNKNOWN) for handle in handles}
        self._entries[attribute].update(filled)

        if self.logger:
            self.logger.attribute_fetch(
                attribute.value,
                len(handles),
                len(values),
                (time.monotonic() - start) * 1000,
            )
        return filled

    def peek(self, handle: str, attribute: AttributeClass) -> Any:
        """Return the cached value, ``UNKNOWN``, or ``None`` when never asked."""
        return self._entries[attribute].get(handle)

    def invalidate(
        self,
        handles: Optional[Iterable[str]] = None,
        attribute: Optional[AttributeClass] = None
    ) -> int:
        """
        Drop cached entries so the next lookup refetches them.

        Args:
            handles: Handles to drop; every handle when None
            attribute: Attribute class to clear; every class when None

        Returns:
            Number of entries removed
        """
        classes = [attribute] if attribute else list(AttributeClass)
        removed = 0
        for cls in classes:
            entries = self._entries[cls]
            if handles is None:
                removed += len(entries)
                entries.clear()
                continue
            for handle in handles:
                if entries.pop(handle, None) is not None:
                    removed += 1
        return removed

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Per-class counters including current size."""
        report = {}
        for cls in AttributeClass:
            self._stats[cls].size = len(self._entries[cls])
            report[cls.value] = self._stats[cls].as_dict()
        return report
