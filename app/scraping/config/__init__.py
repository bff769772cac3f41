"""
Config helpers for product scraping.
"""

from app.scraping.config.loader import get_product_scraping_settings, load_platform_configs
from app.scraping.config.models import PlatformConfig, ProductScrapingSettings

__all__ = [
    "PlatformConfig",
    "ProductScrapingSettings",
    "get_product_scraping_settings",
    "load_platform_configs",
]
