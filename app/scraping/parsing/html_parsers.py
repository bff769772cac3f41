"""
BeautifulSoup-based parsing layer for product detail pages.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from typing import Any

from bs4 import BeautifulSoup, Tag

PRICE_REGEX = re.compile(
    r"(?:US\s?\$|USD|EUR|GBP|[$€£¥₹₽])\s?\d{1,6}(?:[.,]\d{3})*(?:[.,]\d{1,2})?",
    flags=re.IGNORECASE,
)
IMAGE_ATTRIBUTES = ("data-old-hires", "data-src", "data-lazy-src", "src")
SCHEMA_AVAILABILITY = {
    "instock": "in_stock",
    "outofstock": "out_of_stock",
    "soldout": "out_of_stock",
    "limitedavailability": "limited_stock",
}
TEXT_FIELDS = (
    "title",
    "description",
    "price",
    "original_price",
    "rating",
    "review_count",
    "availability",
    "brand",
    "category",
)


class ProductPageParser:
    """
    Deterministic extraction of raw product fields from one HTML page.

    Configured CSS selectors win; JSON-LD Product data, OpenGraph/product
    meta tags and generic page structure fill whatever they leave empty.
    """

    @classmethod
    def parse(
        cls,
        html: str,
        *,
        selectors: Mapping[str, list[str]] | None = None,
    ) -> dict[str, Any]:
        soup = BeautifulSoup(html, "html.parser")
        selectors = selectors or {}

        raw: dict[str, Any] = {}
        for field_name in TEXT_FIELDS:
            value = cls._select_text(soup, selectors.get(field_name, []), field_name=field_name)
            if value:
                raw[field_name] = value
        images = cls._select_images(soup, selectors.get("images", []))
        if images:
            raw["images"] = images

        for source in (cls.extract_json_ld(soup), cls.extract_meta(soup)):
            for key, value in source.items():
                if value and not raw.get(key):
                    raw[key] = value

        if not raw.get("title"):
            title = cls._fallback_title(soup)
            if title:
                raw["title"] = title
        if not raw.get("price"):
            match = PRICE_REGEX.search(soup.get_text(" ", strip=True))
            if match:
                raw["price"] = match.group(0)
        if not raw.get("images"):
            raw["images"] = cls._fallback_images(soup)
        return raw

    @classmethod
    def extract_json_ld(cls, soup: BeautifulSoup) -> dict[str, Any]:
        """
        Fields from the first schema.org Product object embedded as JSON-LD.
        """

        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            text = script.string or script.get_text()
            if not text or not text.strip():
                continue
            try:
                document = json.loads(text)
            except ValueError:
                continue
            for node in cls._walk_json_ld(document):
                if cls._is_product(node):
                    return cls._product_from_json_ld(node)
        return {}

    @staticmethod
    def extract_meta(soup: BeautifulSoup) -> dict[str, Any]:
        def meta(*names: str) -> str | None:
            for name in names:
                tag = soup.find("meta", attrs={"property": name}) or soup.find(
                    "meta", attrs={"name": name}
                )
                if isinstance(tag, Tag):
                    content = tag.get("content")
                    if isinstance(content, str) and content.strip():
                        return content.strip()
            return None

        raw: dict[str, Any] = {
            "title": meta("og:title", "twitter:title"),
            "description": meta("og:description", "description", "twitter:description"),
            "price": meta("product:price:amount", "og:price:amount"),
            "currency": meta("product:price:currency", "og:price:currency"),
            "brand": meta("product:brand", "og:brand"),
            "availability": meta("product:availability", "og:availability"),
        }
        image = meta("og:image", "twitter:image")
        if image:
            raw["images"] = [image]
        return {key: value for key, value in raw.items() if value}

    @classmethod
    def _walk_json_ld(cls, node: Any) -> Iterator[Mapping[str, Any]]:
        if isinstance(node, list):
            for item in node:
                yield from cls._walk_json_ld(item)
        elif isinstance(node, Mapping):
            yield node
            graph = node.get("@graph")
            if isinstance(graph, list):
                yield from cls._walk_json_ld(graph)

    @staticmethod
    def _is_product(node: Mapping[str, Any]) -> bool:
        node_type = node.get("@type")
        if isinstance(node_type, list):
            return "Product" in node_type
        return node_type == "Product"

    @staticmethod
    def _product_from_json_ld(node: Mapping[str, Any]) -> dict[str, Any]:
        raw: dict[str, Any] = {
            "title": node.get("name"),
            "description": node.get("description"),
            "category": node.get("category") if isinstance(node.get("category"), str) else None,
        }

        brand = node.get("brand")
        if isinstance(brand, Mapping):
            brand = brand.get("name")
        if isinstance(brand, str):
            raw["brand"] = brand

        images = node.get("image")
        if isinstance(images, (str, Mapping)):
            images = [images]
        if isinstance(images, list):
            raw["images"] = [
                image.get("url") if isinstance(image, Mapping) else image
                for image in images
                if isinstance(image, (str, Mapping))
            ]

        offers = node.get("offers")
        if isinstance(offers, list):
            offers = offers[0] if offers else None
        if isinstance(offers, Mapping):
            raw["price"] = offers.get("price") or offers.get("lowPrice")
            raw["original_price"] = offers.get("highPrice")
            raw["currency"] = offers.get("priceCurrency")
            availability = str(offers.get("availability") or "")
            token = availability.rsplit("/", 1)[-1].lower()
            raw["availability"] = SCHEMA_AVAILABILITY.get(token)

        rating = node.get("aggregateRating")
        if isinstance(rating, Mapping):
            raw["rating"] = rating.get("ratingValue")
            raw["review_count"] = rating.get("reviewCount") or rating.get("ratingCount")

        return {key: value for key, value in raw.items() if value not in (None, "", [])}

    @classmethod
    def _select_text(cls, soup: BeautifulSoup, selectors: list[str], *, field_name: str) -> str | None:
        for selector in selectors:
            for node in soup.select(selector):
                text = cls._clean_text(node.get_text(" ", strip=True))
                if field_name in {"price", "original_price"} and not re.search(r"\d", text):
                    continue
                if text:
                    return text
        return None

    @classmethod
    def _select_images(cls, soup: BeautifulSoup, selectors: list[str]) -> list[str]:
        images: list[str] = []
        for selector in selectors:
            for node in soup.select(selector):
                img_nodes = [node] if node.name == "img" else node.find_all("img")
                for img in img_nodes:
                    source = cls._image_source(img)
                    if source and source not in images:
                        images.append(source)
        return images

    @staticmethod
    def _image_source(img: Tag) -> str | None:
        dynamic = img.get("data-a-dynamic-image")
        if isinstance(dynamic, str) and dynamic.strip().startswith("{"):
            try:
                urls = list(json.loads(dynamic).keys())
            except ValueError:
                urls = []
            if urls:
                return urls[-1]
        for attribute in IMAGE_ATTRIBUTES:
            value = img.get(attribute)
            if isinstance(value, str) and value.strip() and not value.startswith("data:"):
                return value.strip()
        return None

    @classmethod
    def _fallback_title(cls, soup: BeautifulSoup) -> str | None:
        heading = soup.find("h1")
        if heading is not None:
            text = cls._clean_text(heading.get_text(" ", strip=True))
            if text:
                return text
        if soup.title is not None and soup.title.string:
            return cls._clean_text(soup.title.string).split("|")[0].strip() or None
        return None

    @classmethod
    def _fallback_images(cls, soup: BeautifulSoup) -> list[str]:
        images: list[str] = []
        for img in soup.find_all("img")[:100]:
            source = cls._image_source(img)
            if not source or "1x1" in source or "sprite" in source.lower():
                continue
            if source not in images:
                images.append(source)
        return images[:10]

    @staticmethod
    def _clean_text(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()
