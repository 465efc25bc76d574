import logging
from typing import Any, Dict, Optional

import requests

from journal_insights.core.config import (
    GEMINI_MODEL,
    GEMINI_PROXY_KEY,
    GEMINI_PROXY_URL,
    INSIGHTS_EXTRACTION_TIMEOUT,
)
from journal_insights.core.errors import ExtractionError
from journal_insights.insights.ai_providers.base import ThemeExtractionService

logger = logging.getLogger(__name__)


class GeminiProxyThemeService(ThemeExtractionService):
    """
    Theme extraction through an HTTP proxy in front of Gemini.

    The proxy takes {prompt, model, maxTokens, temperature} and answers {text}.
    """

    model_tag = "gemini-proxy"

    def __init__(
        self,
        url: Optional[str] = GEMINI_PROXY_URL,
        api_key: Optional[str] = GEMINI_PROXY_KEY,
        model: str = GEMINI_MODEL,
        timeout: float = INSIGHTS_EXTRACTION_TIMEOUT,
        session: Optional[requests.Session] = None,
        max_tokens: int = 3000,
        temperature: float = 0.7,
    ):
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def complete(self, prompt: str) -> str:
        if not self.url:
            raise ExtractionError("Missing GEMINI_PROXY_URL in environment")

        body: Dict[str, Any] = {
            "prompt": prompt,
            "model": self.model,
            "maxTokens": self.max_tokens,
            "temperature": self.temperature,
        }
        try:
            response = self.session.post(self.url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning(f"Gemini proxy timed out after {self.timeout}s")
            raise ExtractionError(f"Theme extraction timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.warning(f"Gemini proxy request failed: {e}")
            raise ExtractionError(f"AI analysis failed: {e}") from e

        if response.status_code >= 400:
            raise ExtractionError(
                f"AI analysis failed: proxy returned {response.status_code}: {response.text[:500]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExtractionError("Gemini proxy returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise ExtractionError("Gemini proxy returned an unexpected body")
        if data.get("error"):
            raise ExtractionError(f"AI analysis failed: {data['error']}")
        text = data.get("text")
        if not isinstance(text, str):
            raise ExtractionError("Gemini proxy response is missing text")
        return text
