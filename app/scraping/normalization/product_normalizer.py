"""
Normalization of raw extracted product fields into scraped candidates.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import unquote, urljoin, urlparse

from app.domain.scraping import (
    MAX_MAX_IMAGES,
    Availability,
    JobSettings,
    ScrapedProductCandidate,
)

MAX_TITLE_LENGTH = 500
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "₽": "RUB",
}
CURRENCY_CODES = {"USD", "EUR", "GBP", "JPY", "CNY", "INR", "RUB", "CAD", "AUD"}

_WHITESPACE = re.compile(r"\s+")
_NUMBER_TOKEN = re.compile(r"\d[\d.,]*")
_SLUG_NOISE = re.compile(r"^(?:dp|gp|product|products|item|itm|ip|p)$|^[A-Z0-9]{10}$|^\d+$")


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def _parse_decimal_token(token: str) -> float | None:
    token = token.strip(".,")
    if not token:
        return None
    if "," in token and "." in token:
        # Whichever separator comes last is the decimal point.
        if token.rfind(",") > token.rfind("."):
            token = token.replace(".", "").replace(",", ".")
        else:
            token = token.replace(",", "")
    elif "," in token:
        head, _, tail = token.rpartition(",")
        if len(tail) == 2 and "," not in head:
            token = f"{head}.{tail}"
        else:
            token = token.replace(",", "")
    elif token.count(".") > 1:
        token = token.replace(".", "")
    try:
        return float(token)
    except ValueError:
        return None


def parse_price(value: Any) -> float | None:
    """
    Parse the first amount in a price string ("$1,299.99", "US $12.50 - 20").
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return round(float(value), 2) if value >= 0 else None
    if isinstance(value, Mapping):
        for key in ("current", "value", "amount", "price"):
            parsed = parse_price(value.get(key))
            if parsed is not None:
                return parsed
        return None
    match = _NUMBER_TOKEN.search(str(value))
    if match is None:
        return None
    parsed = _parse_decimal_token(match.group(0))
    if parsed is None or parsed < 0:
        return None
    return round(parsed, 2)


def detect_currency(value: Any, default: str = "USD") -> str:
    text = clean_text(value).upper()
    if not text:
        return default
    for code in CURRENCY_CODES:
        if code in text:
            return code
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in text:
            return code
    return default


def parse_rating(value: Any) -> float | None:
    """
    Parse a rating such as "4.5 out of 5 stars", capped at 5.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        rating = float(value)
    else:
        match = re.search(r"\d+(?:[.,]\d+)?", str(value))
        if match is None:
            return None
        rating = float(match.group(0).replace(",", "."))
    if rating < 0:
        return None
    return round(min(rating, 5.0), 2)


def parse_count(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None
    match = re.search(r"\d[\d,.\s]*", str(value))
    if match is None:
        return None
    digits = re.sub(r"\D", "", match.group(0))
    return int(digits) if digits else None


def normalize_availability(value: Any) -> str:
    text = clean_text(value).lower()
    if not text:
        return Availability.UNKNOWN
    if text in Availability.ALL:
        return text
    if "out of stock" in text or "unavailable" in text or "sold out" in text:
        return Availability.OUT_OF_STOCK
    if "limited" in text or re.search(r"only \d+ left", text):
        return Availability.LIMITED_STOCK
    if "in stock" in text or "available" in text or "instock" in text:
        return Availability.IN_STOCK
    return Availability.UNKNOWN


def is_valid_image_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return False
    path = parsed.path.lower()
    return any(ext in path for ext in IMAGE_EXTENSIONS)


def normalize_image_urls(images: Iterable[Any], *, base_url: str) -> list[str]:
    """
    Resolve protocol-relative and relative image URLs, dropping inline data
    URIs and duplicates while keeping order.
    """

    normalized: list[str] = []
    seen: set[str] = set()
    for image in images:
        if isinstance(image, Mapping):
            image = image.get("url") or image.get("src")
        if not isinstance(image, str):
            continue
        candidate = image.strip()
        if not candidate or candidate.startswith("data:"):
            continue
        if candidate.startswith("//"):
            candidate = f"https:{candidate}"
        elif not candidate.startswith(("http://", "https://")):
            candidate = urljoin(base_url, candidate)
        if candidate in seen:
            continue
        seen.add(candidate)
        normalized.append(candidate)
        if len(normalized) >= MAX_MAX_IMAGES:
            break
    return normalized


def calculate_discount(price: float | None, original_price: float | None) -> float | None:
    if price is None or original_price is None or original_price <= 0:
        return None
    if original_price <= price:
        return None
    return round((original_price - price) / original_price * 100, 1)


def _normalize_specifications(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    normalized: dict[str, str] = {}
    for key, item in value.items():
        cleaned_key = clean_text(key)
        cleaned_value = clean_text(item)
        if cleaned_key and cleaned_value:
            normalized[cleaned_key] = cleaned_value
    return normalized


def title_from_url(url: str) -> str | None:
    """
    Derive a readable title from the URL path slug, if it has one.
    """

    try:
        path = urlparse(url).path
    except ValueError:
        return None
    for segment in reversed([part for part in path.split("/") if part]):
        segment = unquote(segment).rsplit(".", 1)[0]
        if _SLUG_NOISE.match(segment):
            continue
        words = [word for word in re.split(r"[-_+]+", segment) if word]
        if len(words) >= 2:
            return " ".join(word.capitalize() for word in words)[:MAX_TITLE_LENGTH]
    return None


class ProductNormalizer:
    """
    Convert provider output into ScrapedProductCandidate records.

    Never raises on malformed input; unparseable fields become empty.
    """

    def normalize(
        self,
        raw: Mapping[str, Any],
        *,
        url: str,
        platform: str,
        scraped_at: datetime | None = None,
        default_currency: str = "USD",
    ) -> ScrapedProductCandidate:
        normalized_time = scraped_at or datetime.now(timezone.utc)
        if normalized_time.tzinfo is None:
            normalized_time = normalized_time.replace(tzinfo=timezone.utc)

        price = parse_price(raw.get("price"))
        original_price = parse_price(raw.get("original_price"))
        if original_price is not None and price is not None and original_price <= price:
            original_price = None

        currency_hint = raw.get("currency") or raw.get("price")
        currency = detect_currency(currency_hint, default=default_currency)

        raw_images = raw.get("images") or []
        if isinstance(raw_images, str):
            raw_images = [raw_images]

        title = clean_text(raw.get("title"))[:MAX_TITLE_LENGTH]
        if not title:
            title = title_from_url(url) or f"{platform.replace('-', ' ').title()} Product"

        discount_value = parse_price(raw.get("discount_percentage"))
        if discount_value is None:
            discount_value = calculate_discount(price, original_price)

        return ScrapedProductCandidate(
            title=title,
            description=clean_text(raw.get("description")),
            price=price,
            original_price=original_price,
            currency=currency,
            images=normalize_image_urls(raw_images, base_url=url),
            rating=parse_rating(raw.get("rating")),
            review_count=parse_count(raw.get("review_count")),
            brand=clean_text(raw.get("brand"))[:255] or None,
            category=clean_text(raw.get("category"))[:255] or None,
            availability=normalize_availability(raw.get("availability")),
            discount_percentage=discount_value,
            specifications=_normalize_specifications(raw.get("specifications")),
            source_platform=platform,
            source_url=url,
            scraped_at=normalized_time,
        )

    def placeholder(
        self,
        *,
        url: str,
        platform: str,
        reason: str | None = None,
        scraped_at: datetime | None = None,
    ) -> ScrapedProductCandidate:
        """
        Minimal record derived from the URL alone, used when a page cannot be
        fetched or parsed.
        """

        host = urlparse(url).hostname or url
        specifications = {"extraction": "placeholder"}
        if reason:
            specifications["extraction_error"] = reason[:500]
        return self.normalize(
            {
                "title": title_from_url(url),
                "description": f"Product listing from {host}.",
                "specifications": specifications,
            },
            url=url,
            platform=platform,
            scraped_at=scraped_at,
        )

    @staticmethod
    def apply_settings(
        candidate: ScrapedProductCandidate,
        settings: JobSettings,
    ) -> ScrapedProductCandidate:
        """
        Filter and cap images per job settings.
        """

        images = list(candidate.images)
        if settings.validate_images:
            images = [image for image in images if is_valid_image_url(image)]
        images = images[: settings.max_images]
        if images == candidate.images:
            return candidate
        return dataclasses.replace(candidate, images=images)
