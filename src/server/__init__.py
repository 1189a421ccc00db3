"""HTTP surface of the catalog layer."""

from .app import create_app

__all__ = ["create_app"]
