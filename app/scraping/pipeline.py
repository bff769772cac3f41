"""
Ordered provider fallback for a single product URL.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from functools import lru_cache

from app.config import get_ai_enhancement_settings, get_professional_api_settings
from app.domain.scraping import Availability, JobSettings, ScrapedProductCandidate
from app.scraping.config import get_product_scraping_settings, load_platform_configs
from app.scraping.errors import ExtractionError
from app.scraping.fetcher import PageFetcher
from app.scraping.logging_utils import log_event, truncate_error
from app.scraping.normalization import ProductNormalizer
from app.scraping.platforms import SUPPORTED_PLATFORMS, detect_platform
from app.scraping.providers import ExtractionProvider, ProviderKind
from app.scraping.registry import ProviderRegistry

logger = logging.getLogger(__name__)

OUT_OF_STOCK_REASON = "excluded: product is out of stock"


@dataclass(frozen=True)
class ExtractionOutcome:
    candidate: ScrapedProductCandidate
    provider: str
    platform: str
    attempt_errors: list[str] = field(default_factory=list)


class ExtractionPipeline:
    """
    Try providers in preference order until one returns a candidate.

    Each attempt runs on the provider executor and is bounded by
    min(provider timeout, remaining URL budget). A timed-out attempt is
    abandoned; its thread finishes in the background.
    When the best-effort attempt times out or the budget runs out before it,
    the pipeline returns the URL-derived placeholder itself.
    """

    def __init__(
        self,
        *,
        providers: Sequence[ExtractionProvider],
        provider_timeout_seconds: float,
        url_timeout_seconds: float,
        executor: Executor | None = None,
        normalizer: ProductNormalizer | None = None,
        pool_size: int = 8,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        fallbacks = [p for p in providers if p.kind == ProviderKind.BEST_EFFORT]
        if len(fallbacks) != 1:
            raise ValueError("Exactly one best-effort provider is required.")
        self.providers = list(providers)
        self.fallback = fallbacks[0]
        self.normalizer = normalizer or ProductNormalizer()
        self.provider_timeout_seconds = provider_timeout_seconds
        self.url_timeout_seconds = url_timeout_seconds
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=pool_size,
            thread_name_prefix="extraction-provider",
        )
        self._clock = clock

    def provider_chain(self, *, platform: str, settings: JobSettings) -> list[ExtractionProvider]:
        chain: list[ExtractionProvider] = []
        for kind, enabled in (
            (ProviderKind.PROFESSIONAL_API, settings.use_professional_apis),
            (ProviderKind.AI_ENHANCED, settings.use_ai_enhancement),
            (ProviderKind.CUSTOM, True),
        ):
            if not enabled:
                continue
            chain.extend(
                provider
                for provider in self.providers
                if provider.kind == kind and provider.is_configured() and provider.supports(platform)
            )
        chain.extend(p for p in self.providers if p.kind == ProviderKind.BEST_EFFORT)
        return chain

    def extract(
        self,
        url: str,
        *,
        platform_hint: str | None = None,
        settings: JobSettings | None = None,
    ) -> ExtractionOutcome:
        """
        Extract one URL and apply job settings to the winning candidate.

        Raises ExtractionError when every provider raises or the candidate is
        excluded by settings.
        """

        job_settings = settings or JobSettings()
        platform = platform_hint if platform_hint in SUPPORTED_PLATFORMS else detect_platform(url)
        deadline = self._clock() + self.url_timeout_seconds
        errors: list[str] = []

        for provider in self.provider_chain(platform=platform, settings=job_settings):
            remaining = deadline - self._clock()
            if remaining <= 0:
                errors.append("url timeout exceeded")
                return self._placeholder_outcome(url, platform=platform, settings=job_settings, errors=errors)

            try:
                candidate = self._attempt(
                    provider,
                    url=url,
                    platform=platform,
                    timeout_seconds=min(self.provider_timeout_seconds, remaining),
                    errors=errors,
                )
            except FutureTimeoutError:
                if provider is self.fallback:
                    return self._placeholder_outcome(url, platform=platform, settings=job_settings, errors=errors)
                continue
            if candidate is None:
                continue
            return self._outcome(
                candidate,
                provider=provider.name,
                platform=platform,
                settings=job_settings,
                errors=errors,
            )

        reason = "all providers failed"
        if errors:
            reason = f"{reason}: {errors[-1]}"
        raise ExtractionError(reason, attempt_errors=errors)

    def _outcome(
        self,
        candidate: ScrapedProductCandidate,
        *,
        provider: str,
        platform: str,
        settings: JobSettings,
        errors: list[str],
    ) -> ExtractionOutcome:
        candidate = ProductNormalizer.apply_settings(candidate, settings)
        if settings.exclude_out_of_stock and candidate.availability == Availability.OUT_OF_STOCK:
            raise ExtractionError(OUT_OF_STOCK_REASON, attempt_errors=errors)
        return ExtractionOutcome(
            candidate=candidate,
            provider=provider,
            platform=platform,
            attempt_errors=errors,
        )

    def _placeholder_outcome(
        self,
        url: str,
        *,
        platform: str,
        settings: JobSettings,
        errors: list[str],
    ) -> ExtractionOutcome:
        log_event(logger, logging.WARNING, "pipeline_placeholder", url=url, platform=platform, error=errors[-1])
        candidate = self.normalizer.placeholder(url=url, platform=platform, reason=errors[-1])
        return self._outcome(
            candidate,
            provider=self.fallback.name,
            platform=platform,
            settings=settings,
            errors=errors,
        )

    def _attempt(
        self,
        provider: ExtractionProvider,
        *,
        url: str,
        platform: str,
        timeout_seconds: float,
        errors: list[str],
    ) -> ScrapedProductCandidate | None:
        """
        Run one provider. None when it raises; a timeout is recorded and re-raised.
        """

        started = self._clock()
        future = self._executor.submit(provider.extract, url, platform=platform)
        try:
            candidate = future.result(timeout=timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            errors.append(f"{provider.name}: timed out after {timeout_seconds:.1f}s")
            log_event(
                logger,
                logging.WARNING,
                "provider_timeout",
                provider=provider.name,
                url=url,
                timeout_seconds=round(timeout_seconds, 3),
            )
            raise
        except Exception as exc:
            errors.append(f"{provider.name}: {truncate_error(exc, limit=500)}")
            log_event(
                logger,
                logging.WARNING,
                "provider_failed",
                provider=provider.name,
                url=url,
                error=str(exc),
            )
            return None

        log_event(
            logger,
            logging.INFO,
            "provider_succeeded",
            provider=provider.name,
            url=url,
            platform=platform,
            duration_ms=int((self._clock() - started) * 1000),
        )
        return candidate

    def shutdown(self, *, wait: bool = False) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)


@lru_cache(maxsize=1)
def get_extraction_pipeline() -> ExtractionPipeline:
    settings = get_product_scraping_settings()
    platform_configs = load_platform_configs(config_path=settings.config_path)
    fetcher = PageFetcher(settings=settings, platform_configs=platform_configs)
    normalizer = ProductNormalizer()
    registry = ProviderRegistry(
        fetcher=fetcher,
        normalizer=normalizer,
        platform_configs=platform_configs,
    )
    providers = registry.build_providers(
        api_settings=get_professional_api_settings(),
        ai_settings=get_ai_enhancement_settings(),
        extra_provider_paths=settings.extra_providers,
    )
    return ExtractionPipeline(
        providers=providers,
        provider_timeout_seconds=settings.provider_timeout_seconds,
        url_timeout_seconds=settings.url_timeout_seconds,
        normalizer=normalizer,
        pool_size=settings.provider_pool_size,
    )
