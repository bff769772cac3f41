"""
Extraction provider exports.
"""

from app.scraping.providers.ai_enhanced import AIEnhancedProvider
from app.scraping.providers.base import ExtractionProvider, ProviderKind
from app.scraping.providers.best_effort import BestEffortProvider
from app.scraping.providers.professional_api import ProfessionalApiProvider

__all__ = [
    "AIEnhancedProvider",
    "BestEffortProvider",
    "ExtractionProvider",
    "ProfessionalApiProvider",
    "ProviderKind",
]
