"""
Repository layer exports.
"""

from db.repositories.scraped_product_repository import ScrapedProductRepository
from db.repositories.scraping_job_repository import ScrapingJobRepository

__all__ = [
    "ScrapedProductRepository",
    "ScrapingJobRepository",
]
