"""
HTML parsing exports.
"""

from app.scraping.parsing.html_parsers import ProductPageParser

__all__ = ["ProductPageParser"]
