"""
Extraction provider registry and factory.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable, Mapping

from app.config import AIEnhancementSettings, ProfessionalApiSettings
from app.scraping.config.models import PlatformConfig
from app.scraping.fetcher import PageFetcher
from app.scraping.normalization import ProductNormalizer
from app.scraping.providers import (
    AIEnhancedProvider,
    BestEffortProvider,
    ExtractionProvider,
    ProfessionalApiProvider,
)
from app.scraping.providers.llm_adapter import build_llm_adapter


class ProviderRegistry:
    """
    Builds the provider list: built-ins plus providers loaded by import path.
    """

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

    def build_providers(
        self,
        *,
        api_settings: ProfessionalApiSettings,
        ai_settings: AIEnhancementSettings,
        extra_provider_paths: Iterable[str] = (),
    ) -> list[ExtractionProvider]:
        providers: list[ExtractionProvider] = [
            ProfessionalApiProvider(
                settings=api_settings,
                fetcher=self.fetcher,
                normalizer=self.normalizer,
            ),
            AIEnhancedProvider(
                adapter=build_llm_adapter(ai_settings) if ai_settings.enabled else None,
                fetcher=self.fetcher,
                normalizer=self.normalizer,
                platform_configs=self.platform_configs,
            ),
        ]
        for path in extra_provider_paths:
            provider_class = self._load_dynamic_class(path)
            providers.append(
                provider_class(
                    fetcher=self.fetcher,
                    normalizer=self.normalizer,
                    platform_configs=self.platform_configs,
                )
            )
        providers.append(
            BestEffortProvider(
                fetcher=self.fetcher,
                normalizer=self.normalizer,
                platform_configs=self.platform_configs,
            )
        )
        return providers

    @staticmethod
    def _load_dynamic_class(path: str) -> type[ExtractionProvider]:
        if ":" not in path:
            raise ValueError(f"Invalid provider path '{path}'. Use 'module.path:ClassName'.")

        module_path, class_name = path.split(":", 1)
        module = importlib.import_module(module_path)
        loaded = getattr(module, class_name, None)
        if loaded is None:
            raise ValueError(f"Unable to resolve provider class '{path}'.")
        if not isinstance(loaded, type) or not issubclass(loaded, ExtractionProvider):
            raise ValueError(f"Class '{path}' must inherit from ExtractionProvider.")
        return loaded
