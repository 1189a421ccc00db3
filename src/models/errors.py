"""Error types for the catalog layer."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error body returned by the HTTP app."""
    error: str
    code: str
    details: Dict[str, Any] = {}


class CatalogError(Exception):
    """Base exception for the catalog layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.message, code=self.code, details=self.details)


class Unauthorized(CatalogError):
    """Invalidation secret did not match."""

    def __init__(self, message: str = "Invalid secret", details: Optional[Dict[str, Any]] = None):
        super().__init__("UNAUTHORIZED", message, details)


class BackendUnavailable(CatalogError):
    """An outbound backend call failed or returned a non-success status."""

    def __init__(
        self,
        source: str,
        message: str = "Backend unavailable",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.source = source
        self.status_code = status_code
        super().__init__("BACKEND_UNAVAILABLE", f"{source}: {message}", details)


class NotFound(CatalogError):
    """Archive dimension or slug resolved to nothing."""

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class PartialReconciliationFailure(CatalogError):
    """A single want-list deletion failed."""

    def __init__(self, product_id: str, variant_id: Optional[str], reason: str):
        self.product_id = product_id
        self.variant_id = variant_id
        super().__init__(
            "PARTIAL_RECONCILIATION_FAILURE",
            f"Failed to remove want-list entry {product_id}: {reason}",
            {"product_id": product_id, "variant_id": variant_id},
        )


class InvalidEvent(CatalogError):
    """Invalidation payload could not be understood."""

    def __init__(self, message: str = "Invalid event", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_EVENT", message, details)


class InvalidationFailed(CatalogError):
    """The rendered-page cache refused an eviction."""

    def __init__(self, message: str = "Revalidation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALIDATION_FAILED", message, details)
