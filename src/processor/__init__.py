"""Product normalization module."""

from .normalizer import normalize_batch, normalize_product

__all__ = ["normalize_batch", "normalize_product"]
