"""
Extraction provider interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.scraping import ScrapedProductCandidate


class ProviderKind:
    PROFESSIONAL_API = "professional_api"
    AI_ENHANCED = "ai_enhanced"
    CUSTOM = "custom"
    BEST_EFFORT = "best_effort"


class ExtractionProvider(ABC):
    """
    One strategy for turning a product URL into a normalized candidate.
    """

    name: str = "provider"
    kind: str = ProviderKind.CUSTOM

    def is_configured(self) -> bool:
        """
        Whether credentials or collaborators required by the provider exist.
        """

        return True

    def supports(self, platform: str) -> bool:
        return True

    @abstractmethod
    def extract(self, url: str, *, platform: str) -> ScrapedProductCandidate:
        """
        Return a normalized candidate or raise.
        """
