"""
app/api/routers package marker.
"""

from app.api.routers.scraped_products import router as scraped_products_router
from app.api.routers.scraping_jobs import router as scraping_jobs_router

__all__ = [
    "scraped_products_router",
    "scraping_jobs_router",
]
