"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.product import ImportedProduct, ImportedProductStatus, Product
from db.models.scraped_product import ScrapedProduct
from db.models.scraping_job import ScrapingJob, ScrapingJobStatus

__all__ = [
    "ImportedProduct",
    "ImportedProductStatus",
    "Product",
    "ScrapedProduct",
    "ScrapingJob",
    "ScrapingJobStatus",
]
