"""
Storage layer exports.
"""

from app.scraping.storage.base import JobStore, ProductStore
from app.scraping.storage.sqlalchemy_storage import (
    SQLAlchemyJobStore,
    SQLAlchemyProductStore,
    get_job_store,
    get_product_store,
)

__all__ = [
    "JobStore",
    "ProductStore",
    "SQLAlchemyJobStore",
    "SQLAlchemyProductStore",
    "get_job_store",
    "get_product_store",
]
