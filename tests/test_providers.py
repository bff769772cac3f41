"""
tests/test_providers.py

Built-in extraction providers and the provider registry, with the HTTP layer
replaced by a scripted fetcher.
"""

from __future__ import annotations

from typing import Any

import pytest

from app.config import AIEnhancementSettings, ProfessionalApiSettings
from app.scraping.errors import ExtractionError
from app.scraping.fetcher import PageFetchError
from app.scraping.normalization import ProductNormalizer
from app.scraping.providers import (
    AIEnhancedProvider,
    BestEffortProvider,
    ExtractionProvider,
    ProfessionalApiProvider,
    ProviderKind,
)
from app.scraping.providers.llm_adapter import (
    BaseLLMAdapter,
    MockLLMAdapter,
    OpenAILLMAdapter,
    build_llm_adapter,
)
from app.scraping.registry import ProviderRegistry
from fakes import make_candidate

PRODUCT_PAGE = """
<html><head><title>Desk Lamp | Shop</title></head>
<body>
  <h1>LED Desk Lamp</h1>
  <p class="desc">Adjustable arm.</p>
  <span class="price">$34.00</span>
  <img src="https://cdn.example.com/lamp.jpg">
</body></html>
"""


class ScriptedFetcher:
    def __init__(
        self,
        *,
        html: str | None = None,
        json_body: Any = None,
        error: Exception | None = None,
    ) -> None:
        self.html = html
        self.json_body = json_body
        self.error = error
        self.requests: list[dict[str, Any]] = []

    def fetch_html(self, url: str, *, platform: str) -> str:
        self.requests.append({"url": url, "platform": platform})
        if self.error is not None:
            raise self.error
        return self.html or ""

    def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        self.requests.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.json_body


class ExplodingAdapter(BaseLLMAdapter):
    def generate(self, prompt: str) -> str:
        raise RuntimeError("rate limited")


class ShopProvider(ExtractionProvider):
    name = "shop"

    def __init__(self, *, fetcher, normalizer, platform_configs) -> None:
        self.fetcher = fetcher

    def extract(self, url: str, *, platform: str):
        return make_candidate(url, platform=platform)


def _api_settings(**overrides: Any) -> ProfessionalApiSettings:
    values: dict[str, Any] = {
        "api_key": "secret",
        "amazon_host": "amazon.api.test",
        "ebay_host": "ebay.api.test",
    }
    values.update(overrides)
    return ProfessionalApiSettings(**values)


# ---------------------------------------------------------------------------
# Professional API
# ---------------------------------------------------------------------------


class TestProfessionalApiProvider:
    def test_amazon_product_details(self) -> None:
        fetcher = ScriptedFetcher(
            json_body={
                "status": "success",
                "product": {
                    "title": "Echo Dot",
                    "feature_bullets": ["Compact", "Alexa built in"],
                    "price": {"current": "39.99", "original": "49.99", "currency": "USD"},
                    "images": ["https://m.media-amazon.com/images/I/echo.jpg"],
                    "rating": 4.7,
                    "reviews_count": 1200,
                    "availability": "In Stock",
                },
            }
        )
        provider = ProfessionalApiProvider(settings=_api_settings(), fetcher=fetcher, normalizer=ProductNormalizer())

        candidate = provider.extract("https://www.amazon.com/dp/B08N5WRWNW", platform="amazon")

        [call] = fetcher.requests
        assert call["method"] == "POST"
        assert call["url"] == "https://amazon.api.test/product/details"
        assert call["headers"] == {"X-RapidAPI-Key": "secret", "X-RapidAPI-Host": "amazon.api.test"}
        assert call["json_body"] == {"asin": "B08N5WRWNW", "country": "US"}
        assert candidate.title == "Echo Dot"
        assert candidate.description == "Compact Alexa built in"
        assert candidate.price == 39.99
        assert candidate.original_price == 49.99
        assert candidate.review_count == 1200
        assert candidate.availability == "in_stock"

    def test_amazon_url_without_asin(self) -> None:
        provider = ProfessionalApiProvider(
            settings=_api_settings(),
            fetcher=ScriptedFetcher(),
            normalizer=ProductNormalizer(),
        )
        with pytest.raises(ExtractionError, match="no ASIN"):
            provider.extract("https://www.amazon.com/bestsellers", platform="amazon")

    def test_unsuccessful_ebay_response(self) -> None:
        fetcher = ScriptedFetcher(json_body={"success": False})
        provider = ProfessionalApiProvider(settings=_api_settings(), fetcher=fetcher, normalizer=ProductNormalizer())

        with pytest.raises(ExtractionError, match="eBay API returned no item"):
            provider.extract("https://www.ebay.com/itm/123456789012", platform="ebay")
        assert fetcher.requests[0]["url"] == "https://ebay.api.test/item/123456789012"

    def test_configuration_and_platform_support(self) -> None:
        unconfigured = ProfessionalApiProvider(
            settings=_api_settings(api_key=None),
            fetcher=ScriptedFetcher(),
            normalizer=ProductNormalizer(),
        )
        assert unconfigured.is_configured() is False
        assert unconfigured.supports("aliexpress") is True
        assert unconfigured.supports("walmart") is False


# ---------------------------------------------------------------------------
# AI enhanced
# ---------------------------------------------------------------------------


class TestAIEnhancedProvider:
    def test_description_rewritten(self) -> None:
        adapter = MockLLMAdapter("A bright, adjustable lamp for any desk.")
        provider = AIEnhancedProvider(
            adapter=adapter,
            fetcher=ScriptedFetcher(html=PRODUCT_PAGE),
            normalizer=ProductNormalizer(),
        )

        candidate = provider.extract("https://shop.example.com/p/lamp", platform="generic")

        assert candidate.title == "LED Desk Lamp"
        assert candidate.price == 34.0
        assert candidate.description == "A bright, adjustable lamp for any desk."
        assert "Title: LED Desk Lamp" in adapter.prompts[0]

    def test_llm_failure_keeps_parsed_candidate(self) -> None:
        provider = AIEnhancedProvider(
            adapter=ExplodingAdapter(),
            fetcher=ScriptedFetcher(html=PRODUCT_PAGE),
            normalizer=ProductNormalizer(),
        )

        candidate = provider.extract("https://shop.example.com/p/lamp", platform="generic")

        assert candidate.title == "LED Desk Lamp"
        assert candidate.description == ""

    def test_page_without_title_fails(self) -> None:
        provider = AIEnhancedProvider(
            adapter=MockLLMAdapter(),
            fetcher=ScriptedFetcher(html="<html><body><p>Access denied</p></body></html>"),
            normalizer=ProductNormalizer(),
        )
        with pytest.raises(ExtractionError, match="no recognizable product title"):
            provider.extract("https://shop.example.com/p/lamp", platform="generic")

    def test_unconfigured_without_adapter(self) -> None:
        provider = AIEnhancedProvider(adapter=None, fetcher=ScriptedFetcher(), normalizer=ProductNormalizer())
        assert provider.is_configured() is False


# ---------------------------------------------------------------------------
# Best effort
# ---------------------------------------------------------------------------


class TestBestEffortProvider:
    def test_parses_page(self) -> None:
        provider = BestEffortProvider(fetcher=ScriptedFetcher(html=PRODUCT_PAGE), normalizer=ProductNormalizer())

        candidate = provider.extract("https://shop.example.com/p/lamp", platform="generic")

        assert candidate.title == "LED Desk Lamp"
        assert candidate.images == ["https://cdn.example.com/lamp.jpg"]

    def test_fetch_failure_yields_placeholder(self) -> None:
        provider = BestEffortProvider(
            fetcher=ScriptedFetcher(error=PageFetchError("HTTP 503 for url")),
            normalizer=ProductNormalizer(),
        )

        candidate = provider.extract("https://shop.example.com/products/walnut-cutting-board", platform="generic")

        assert candidate.title == "Walnut Cutting Board"
        assert candidate.specifications["extraction"] == "placeholder"
        assert candidate.specifications["extraction_error"] == "HTTP 503 for url"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestProviderRegistry:
    def _registry(self) -> ProviderRegistry:
        return ProviderRegistry(fetcher=ScriptedFetcher(), normalizer=ProductNormalizer())

    def test_builtin_order_with_extra_provider(self) -> None:
        providers = self._registry().build_providers(
            api_settings=_api_settings(),
            ai_settings=AIEnhancementSettings(adapter="mock"),
            extra_provider_paths=["test_providers:ShopProvider"],
        )

        assert [p.name for p in providers] == ["professional_api", "ai_enhanced", "shop", "best_effort"]
        assert providers[-1].kind == ProviderKind.BEST_EFFORT
        assert providers[1].is_configured() is True

    def test_disabled_ai_has_no_adapter(self) -> None:
        providers = self._registry().build_providers(
            api_settings=_api_settings(),
            ai_settings=AIEnhancementSettings(enabled=False, adapter="mock"),
        )
        assert providers[1].is_configured() is False

    @pytest.mark.parametrize("path", ["no_colon_here", "fakes:make_candidate", "fakes:MissingClass"])
    def test_invalid_provider_paths(self, path: str) -> None:
        with pytest.raises(ValueError):
            self._registry().build_providers(
                api_settings=_api_settings(),
                ai_settings=AIEnhancementSettings(enabled=False),
                extra_provider_paths=[path],
            )


# ---------------------------------------------------------------------------
# LLM adapter factory
# ---------------------------------------------------------------------------


class RecordingOpenAI:
    created: list[dict[str, Any]] = []

    def __init__(self, **kwargs: Any) -> None:
        RecordingOpenAI.created.append(kwargs)


class TestBuildLLMAdapter:
    def test_openai_client_gets_request_timeout(self, monkeypatch) -> None:
        RecordingOpenAI.created = []
        monkeypatch.setattr("openai.OpenAI", RecordingOpenAI)

        adapter = build_llm_adapter(
            AIEnhancementSettings(api_key="secret", base_url="https://llm.test/v1", timeout_seconds=12.5)
        )

        assert isinstance(adapter, OpenAILLMAdapter)
        assert RecordingOpenAI.created == [
            {"api_key": "secret", "max_retries": 1, "base_url": "https://llm.test/v1", "timeout": 12.5}
        ]

    def test_unconfigured_settings_build_nothing(self) -> None:
        assert build_llm_adapter(AIEnhancementSettings(api_key=None)) is None
        assert isinstance(build_llm_adapter(AIEnhancementSettings(adapter="mock")), MockLLMAdapter)
