"""Attribute caching module."""

from .attribute_cache import UNKNOWN, AttributeCache

__all__ = ["UNKNOWN", "AttributeCache"]
