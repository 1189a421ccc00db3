"""Archive query resolution module."""

from .resolver import ArchiveQueryResolver
from .service import CatalogService

__all__ = ["ArchiveQueryResolver", "CatalogService"]
