"""Page invalidation module."""

from .gateway import InvalidationGateway, parse_event
from .page_cache import HttpPageCache, InMemoryPageCache

__all__ = ["HttpPageCache", "InMemoryPageCache", "InvalidationGateway", "parse_event"]
