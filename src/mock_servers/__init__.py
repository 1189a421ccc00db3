"""Mock backends for local runs and testing."""

from .app import build_catalog, create_app, create_commerce_app, create_content_app

__all__ = ["build_catalog", "create_app", "create_commerce_app", "create_content_app"]
