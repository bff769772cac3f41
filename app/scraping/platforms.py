"""
Platform detection, URL validation and product-id extraction for supported
e-commerce sites.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import urlparse

from app.domain.scraping import UrlValidationResult

AMAZON = "amazon"
ALIBABA = "alibaba"
ALIEXPRESS = "aliexpress"
EBAY = "ebay"
WALMART = "walmart"
SHOPIFY = "shopify"
GENERIC = "generic"
MULTI_PLATFORM = "multi-platform"

SUPPORTED_PLATFORMS = (AMAZON, ALIBABA, ALIEXPRESS, EBAY, WALMART, SHOPIFY, GENERIC)

# Checked in order; first matching host substring wins.
_DOMAIN_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (AMAZON, ("amazon.",)),
    (ALIBABA, ("alibaba.",)),
    (ALIEXPRESS, ("aliexpress.",)),
    (EBAY, ("ebay.",)),
    (WALMART, ("walmart.",)),
    (SHOPIFY, ("shopify", "myshopify.com", "shopifypreview.com")),
)

_SUGGESTIONS: dict[str, list[str]] = {
    AMAZON: [
        "Make sure the URL is a product page (contains /dp/ or /gp/product/)",
        "Remove tracking parameters (ref=, tag=) for cleaner URLs",
    ],
    ALIBABA: [
        "Use product detail page URLs (contains /product-detail/)",
        "Avoid supplier store URLs for better results",
    ],
    ALIEXPRESS: [
        "Use individual product URLs (contains /item/)",
        "Avoid category or search result URLs",
    ],
    EBAY: [
        "Use item listing URLs (contains /itm/)",
    ],
}

_ASIN_PATTERNS = (
    re.compile(r"/dp/([A-Z0-9]{10})"),
    re.compile(r"/gp/product/([A-Z0-9]{10})"),
    re.compile(r"asin=([A-Z0-9]{10})", flags=re.IGNORECASE),
)
_ALIEXPRESS_ITEM_PATTERN = re.compile(r"item/(\d+)")
_EBAY_ITEM_PATTERN = re.compile(r"itm/(?:[^/?#]+/)?(\d+)")


def is_valid_product_url(url: str) -> bool:
    """
    True for absolute http(s) URLs with a host.
    """

    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc) and bool(parsed.hostname)


def detect_platform(url: str) -> str:
    """
    Map a URL to its platform tag by host substring; unknown hosts are generic.
    """

    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return GENERIC
    for platform, markers in _DOMAIN_MARKERS:
        if any(marker in host for marker in markers):
            return platform
    return GENERIC


def resolve_job_platform(urls: Sequence[str], declared: str | None = None) -> str:
    """
    Platform tag recorded on a job: the declared one, else the single platform
    all URLs share, else multi-platform.
    """

    if declared and declared.strip():
        return declared.strip().lower()
    detected = {detect_platform(url) for url in urls}
    if len(detected) == 1:
        return detected.pop()
    return MULTI_PLATFORM


def validate_url(url: str) -> UrlValidationResult:
    """
    Validate one URL and return its platform with scraping suggestions.
    """

    candidate = (url or "").strip()
    if not is_valid_product_url(candidate):
        return UrlValidationResult(url=candidate, valid=False, error="Invalid URL format")
    platform = detect_platform(candidate)
    return UrlValidationResult(
        url=candidate,
        valid=True,
        platform=platform,
        suggestions=list(_SUGGESTIONS.get(platform, [])),
    )


def extract_amazon_asin(url: str) -> str | None:
    for pattern in _ASIN_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1).upper()
    return None


def extract_aliexpress_item_id(url: str) -> str | None:
    match = _ALIEXPRESS_ITEM_PATTERN.search(url)
    return match.group(1) if match else None


def extract_ebay_item_id(url: str) -> str | None:
    match = _EBAY_ITEM_PATTERN.search(url)
    return match.group(1) if match else None
