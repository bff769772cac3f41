"""
RapidAPI product-detail provider for Amazon, AliExpress and eBay listings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from app.config import ProfessionalApiSettings
from app.domain.scraping import ScrapedProductCandidate
from app.scraping.errors import ExtractionError
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import log_event
from app.scraping.normalization import ProductNormalizer
from app.scraping.platforms import (
    ALIEXPRESS,
    AMAZON,
    EBAY,
    extract_aliexpress_item_id,
    extract_amazon_asin,
    extract_ebay_item_id,
)
from app.scraping.providers.base import ExtractionProvider, ProviderKind

logger = logging.getLogger(__name__)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


class ProfessionalApiProvider(ExtractionProvider):
    """
    Structured product data from paid RapidAPI endpoints.
    """

    name = "professional_api"
    kind = ProviderKind.PROFESSIONAL_API
    SUPPORTED = frozenset({AMAZON, ALIEXPRESS, EBAY})

    def __init__(
        self,
        *,
        settings: ProfessionalApiSettings,
        fetcher: PageFetcher,
        normalizer: ProductNormalizer,
    ) -> None:
        self.settings = settings
        self.fetcher = fetcher
        self.normalizer = normalizer

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def supports(self, platform: str) -> bool:
        return platform in self.SUPPORTED

    def extract(self, url: str, *, platform: str) -> ScrapedProductCandidate:
        if platform == AMAZON:
            raw = self._fetch_amazon(url)
        elif platform == ALIEXPRESS:
            raw = self._fetch_aliexpress(url)
        elif platform == EBAY:
            raw = self._fetch_ebay(url)
        else:
            raise ExtractionError(f"professional API does not support platform '{platform}'")

        log_event(logger, logging.INFO, "professional_api_hit", url=url, platform=platform)
        return self.normalizer.normalize(raw, url=url, platform=platform)

    def _headers(self, host: str) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self.settings.api_key or "",
            "X-RapidAPI-Host": host,
        }

    def _fetch_amazon(self, url: str) -> dict[str, Any]:
        asin = extract_amazon_asin(url)
        if asin is None:
            raise ExtractionError("no ASIN found in Amazon URL")
        host = self.settings.amazon_host
        data = _as_mapping(
            self.fetcher.request_json(
                "POST",
                f"https://{host}/product/details",
                headers=self._headers(host),
                json_body={"asin": asin, "country": self.settings.country},
                timeout_seconds=self.settings.timeout_seconds,
            )
        )
        product = _as_mapping(data.get("product"))
        if data.get("status") != "success" or not product:
            raise ExtractionError("Amazon API returned no product")
        price = _as_mapping(product.get("price"))
        bullets = product.get("feature_bullets")
        description = product.get("description")
        if not description and isinstance(bullets, list):
            description = " ".join(str(item) for item in bullets)
        return {
            "title": product.get("title") or "Amazon Product",
            "description": description or "",
            "price": price.get("current") or price.get("value"),
            "original_price": price.get("original") or price.get("before"),
            "currency": price.get("currency") or "USD",
            "images": product.get("images") or [],
            "brand": product.get("brand"),
            "rating": product.get("rating"),
            "review_count": product.get("reviews_count"),
            "availability": product.get("availability"),
            "category": product.get("category"),
        }

    def _fetch_aliexpress(self, url: str) -> dict[str, Any]:
        item_id = extract_aliexpress_item_id(url)
        if item_id is None:
            raise ExtractionError("no item id found in AliExpress URL")
        host = self.settings.aliexpress_host
        data = _as_mapping(
            self.fetcher.request_json(
                "GET",
                f"https://{host}/product",
                headers=self._headers(host),
                params={"product_id": item_id},
                timeout_seconds=self.settings.timeout_seconds,
            )
        )
        product = _as_mapping(data.get("data"))
        if not data.get("success") or not product:
            raise ExtractionError("AliExpress API returned no product")
        price = _as_mapping(product.get("price"))
        rating = _as_mapping(product.get("rating"))
        return {
            "title": product.get("title") or "AliExpress Product",
            "description": product.get("description") or "",
            "price": price.get("current"),
            "original_price": price.get("original"),
            "currency": price.get("currency") or "USD",
            "images": product.get("images") or [],
            "brand": _as_mapping(product.get("store")).get("name"),
            "rating": rating.get("average"),
            "review_count": rating.get("count"),
        }

    def _fetch_ebay(self, url: str) -> dict[str, Any]:
        item_id = extract_ebay_item_id(url)
        if item_id is None:
            raise ExtractionError("no item id found in eBay URL")
        host = self.settings.ebay_host
        data = _as_mapping(
            self.fetcher.request_json(
                "GET",
                f"https://{host}/item/{item_id}",
                headers=self._headers(host),
                timeout_seconds=self.settings.timeout_seconds,
            )
        )
        item = _as_mapping(data.get("item"))
        if not data.get("success") or not item:
            raise ExtractionError("eBay API returned no item")
        price = _as_mapping(item.get("price"))
        return {
            "title": item.get("title") or "eBay Item",
            "description": item.get("description") or "",
            "price": price.get("value"),
            "currency": price.get("currency") or "USD",
            "images": item.get("images") or [],
            "availability": item.get("availability"),
        }
