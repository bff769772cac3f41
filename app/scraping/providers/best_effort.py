"""
Last-resort provider: plain page parse with a URL-derived placeholder fallback.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from app.domain.scraping import ScrapedProductCandidate
from app.scraping.config.models import PlatformConfig
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import log_event
from app.scraping.normalization import ProductNormalizer
from app.scraping.parsing import ProductPageParser
from app.scraping.providers.base import ExtractionProvider, ProviderKind

logger = logging.getLogger(__name__)


class BestEffortProvider(ExtractionProvider):
    """
    Always returns a candidate; never raises.
    """

    name = "best_effort"
    kind = ProviderKind.BEST_EFFORT

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        normalizer: ProductNormalizer,
        platform_configs: Mapping[str, PlatformConfig] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.platform_configs = dict(platform_configs or {})

    def extract(self, url: str, *, platform: str) -> ScrapedProductCandidate:
        config = self.platform_configs.get(platform) or self.platform_configs.get("generic")
        try:
            html = self.fetcher.fetch_html(url, platform=platform)
            raw = ProductPageParser.parse(html, selectors=config.selectors if config else None)
            return self.normalizer.normalize(
                raw,
                url=url,
                platform=platform,
                default_currency=(config.default_currency if config else None) or "USD",
            )
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "best_effort_placeholder",
                url=url,
                platform=platform,
                error=str(exc),
            )
            return self.normalizer.placeholder(url=url, platform=platform, reason=str(exc))
