"""Core data models for the catalog aggregation layer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


ARCHIVE_PAGE_SIZE = 48


class AttributeClass(Enum):
    """Auxiliary product attributes fetched outside the core catalog record."""
    STOCK = "stock"
    FORMATS = "formats"
    ARTIST_NAME = "artist_name"


class ArchiveDimension(Enum):
    """Ways products are grouped into archive listing pages."""
    ARTIST = "artist"
    FORMAT = "format"
    TAG = "tag"

    @classmethod
    def parse(cls, value: str) -> "ArchiveDimension":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown archive dimension: {value!r}") from None


class SortKey(Enum):
    """Archive orderings understood by both catalog sources."""
    LATEST = "latest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    TITLE_ASC = "title_asc"
    TITLE_DESC = "title_desc"
    ARTIST_ASC = "artist_asc"
    ARTIST_DESC = "artist_desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """
        Parse a client-supplied sort key.

        Accepts ``price_asc``, ``price-asc`` and ``PriceAsc`` alike.
        Unknown or missing keys fall back to LATEST.
        """
        if not value:
            return cls.LATEST
        normalized = value.strip().replace("-", "_")
        if "_" not in normalized:
            # CamelCase form, e.g. "PriceAsc"
            chars = []
            for i, ch in enumerate(normalized):
                if ch.isupper() and i > 0:
                    chars.append("_")
                chars.append(ch)
            normalized = "".join(chars)
        try:
            return cls(normalized.lower())
        except ValueError:
            return cls.LATEST


class InvalidationScope(Enum):
    """What kind of backend change triggered an invalidation."""
    PRODUCT = "product"
    INVENTORY = "inventory"
    ALL = "all"


class AttributeEviction(Enum):
    """How far an invalidation reaches into the attribute cache."""
    NONE = "none"
    HANDLE = "handle"
    ALL = "all"


@dataclass
class Product:
    """Unified product listing record."""
    id: str
    handle: str
    title: str
    source: str
    price: Optional[float] = None
    currency: str = "USD"
    image_url: Optional[str] = None
    in_stock: Optional[bool] = None
    formats: Optional[List[str]] = None
    artist_name: Optional[str] = None


@dataclass(frozen=True)
class ArchiveQuery:
    """A single archive listing request."""
    dimension: ArchiveDimension
    slug: str
    page: int = 1
    sort_key: SortKey = SortKey.LATEST
    page_size: int = ARCHIVE_PAGE_SIZE

    def __post_init__(self):
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got: {self.page}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class ArchivePage:
    """One page of an archive listing plus pagination metadata."""
    products: List[Product]
    total_count: int
    has_next_page: bool
    page: int = 1
    page_size: int = ARCHIVE_PAGE_SIZE
    display_name: str = ""
    error: Optional[str] = None

    @property
    def total_pages(self) -> int:
        if self.total_count <= 0:
            return 0
        return -(-self.total_count // self.page_size)

    @classmethod
    def empty(cls, query: ArchiveQuery, display_name: str = "", error: Optional[str] = None) -> "ArchivePage":
        return cls(
            products=[],
            total_count=0,
            has_next_page=False,
            page=query.page,
            page_size=query.page_size,
            display_name=display_name,
            error=error,
        )


@dataclass(frozen=True)
class InvalidationEvent:
    """Change notification delivered to the invalidation gateway."""
    scope: InvalidationScope
    product_handle: Optional[str] = None


@dataclass
class InvalidationResult:
    """Acknowledgement of an invalidation."""
    revalidated: List[str]
    timestamp: int  # milliseconds since epoch
    attribute_entries_evicted: int = 0


@dataclass(frozen=True)
class WantlistEntry:
    """A want-list item as stored by the account subsystem."""
    product_id: str
    variant_id: Optional[str] = None

    def matches(self, line: "OrderLine") -> bool:
        """Product always has to match; variant only when both sides name one."""
        if self.product_id != line.product_id:
            return False
        if not self.variant_id or not line.variant_id:
            return True
        return self.variant_id == line.variant_id


@dataclass(frozen=True)
class OrderLine:
    """A purchased line of a confirmed order."""
    product_id: str
    variant_id: Optional[str] = None


@dataclass
class ReconcileReport:
    """Outcome of a want-list reconciliation."""
    removed: List[WantlistEntry] = field(default_factory=list)
    failed: List[WantlistEntry] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.removed and not self.failed


@dataclass
class CacheStats:
    """Counters for one attribute class namespace."""
    hits: int = 0
    misses: int = 0
    fetches: int = 0
    failures: int = 0
    size: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "fetches": self.fetches,
            "failures": self.failures,
            "size": self.size,
        }
