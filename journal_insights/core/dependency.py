from functools import lru_cache
import logging

from journal_insights.core.config import INSIGHTS_PROVIDER
from journal_insights.insights.ai_providers.base import ThemeExtractionService
from journal_insights.insights.ai_providers.gemini_proxy import GeminiProxyThemeService
from journal_insights.insights.ai_providers.openai import OpenAIThemeService

logger = logging.getLogger(__name__)
DEFAULT_PROVIDER = "openai"


@lru_cache(maxsize=None)
def _openai() -> ThemeExtractionService:
    return OpenAIThemeService()


@lru_cache(maxsize=None)
def _gemini_proxy() -> ThemeExtractionService:
    return GeminiProxyThemeService()


def pick_extraction_service(provider: str) -> ThemeExtractionService:
    """
    Returns the theme extraction provider for the given name, falling back
    to the default provider for unknown names.
    """
    name = (provider or DEFAULT_PROVIDER).strip().lower()

    if name == "gemini-proxy":
        return _gemini_proxy()

    if name != DEFAULT_PROVIDER:
        logger.warning(f"Unknown insights provider '{name}'. Falling back to default '{DEFAULT_PROVIDER}'.")

    return _openai()


def get_extraction_service() -> ThemeExtractionService:
    """
    FastAPI dependency that returns the configured theme extraction provider.
    """
    return pick_extraction_service(INSIGHTS_PROVIDER)
