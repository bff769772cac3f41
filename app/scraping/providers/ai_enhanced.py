"""
Page extraction followed by LLM rewriting of the product description.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping

from app.domain.scraping import ScrapedProductCandidate
from app.scraping.config.models import PlatformConfig
from app.scraping.errors import ExtractionError
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import log_event
from app.scraping.normalization import ProductNormalizer
from app.scraping.parsing import ProductPageParser
from app.scraping.providers.base import ExtractionProvider, ProviderKind
from app.scraping.providers.llm_adapter import BaseLLMAdapter

logger = logging.getLogger(__name__)

DESCRIPTION_PROMPT = """Improve this product description for e-commerce:

Title: {title}
Current Description: {description}
Price: {currency} {price}

Create a compelling, professional product description (100-200 words) that:
1. Highlights key benefits and features
2. Uses persuasive language
3. Includes relevant keywords
4. Has a clear structure

Return only the enhanced description text."""


class AIEnhancedProvider(ExtractionProvider):
    """
    Fetch and parse the product page, then rewrite the description with an LLM.

    A page without a recognizable product title is a failure so the next
    provider can try. LLM failures keep the parsed description.
    """

    name = "ai_enhanced"
    kind = ProviderKind.AI_ENHANCED

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter | None,
        fetcher: PageFetcher,
        normalizer: ProductNormalizer,
        platform_configs: Mapping[str, PlatformConfig] | None = None,
    ) -> None:
        self.adapter = adapter
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.platform_configs = dict(platform_configs or {})

    def is_configured(self) -> bool:
        return self.adapter is not None

    def extract(self, url: str, *, platform: str) -> ScrapedProductCandidate:
        if self.adapter is None:
            raise ExtractionError("AI enhancement is not configured")

        config = self.platform_configs.get(platform)
        html = self.fetcher.fetch_html(url, platform=platform)
        raw = ProductPageParser.parse(html, selectors=config.selectors if config else None)
        if not raw.get("title"):
            raise ExtractionError("page has no recognizable product title")

        candidate = self.normalizer.normalize(
            raw,
            url=url,
            platform=platform,
            default_currency=(config.default_currency if config else None) or "USD",
        )
        return self.enhance(candidate)

    def enhance(self, candidate: ScrapedProductCandidate) -> ScrapedProductCandidate:
        prompt = DESCRIPTION_PROMPT.format(
            title=candidate.title,
            description=candidate.description or "No description available",
            currency=candidate.currency,
            price=candidate.price if candidate.price is not None else "Not specified",
        )
        try:
            enhanced = self.adapter.generate(prompt).strip()
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "ai_enhancement_failed",
                url=candidate.source_url,
                error=str(exc),
            )
            return candidate
        if not enhanced:
            return candidate
        return dataclasses.replace(candidate, description=enhanced)
