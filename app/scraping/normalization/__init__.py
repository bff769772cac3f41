"""
Product normalization exports.
"""

from app.scraping.normalization.product_normalizer import ProductNormalizer

__all__ = ["ProductNormalizer"]
