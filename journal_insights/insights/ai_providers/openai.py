from __future__ import annotations

import logging
from typing import Any, Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from journal_insights.core.config import (
    INSIGHTS_EXTRACTION_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_CHAT_MODEL,
)
from journal_insights.core.errors import ExtractionError
from journal_insights.insights.ai_providers.base import ThemeExtractionService
import journal_insights.insights.prompts.theme_prompts_templates as prompts

logger = logging.getLogger(__name__)


class OpenAIThemeService(ThemeExtractionService):
    """Theme extraction over OpenAI Chat Completions in JSON mode."""

    model_tag = "openai"

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: Optional[str] = OPENAI_CHAT_MODEL,
        timeout: float = INSIGHTS_EXTRACTION_TIMEOUT,
        client: Optional[Any] = None,
        max_tokens: int = 3000,
        temperature: float = 0.7,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise ExtractionError("Missing OPENAI_API_KEY in environment")
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=1)
        return self._client

    def complete(self, prompt: str) -> str:
        if not self.model:
            raise ExtractionError("Missing OPENAI_CHAT_MODEL in environment")
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": prompts.THEME_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as e:
            logger.warning(f"OpenAI theme extraction timed out after {self.timeout}s")
            raise ExtractionError(f"Theme extraction timed out after {self.timeout}s") from e
        except OpenAIError as e:
            logger.warning(f"OpenAI theme extraction failed: {e}")
            raise ExtractionError(f"AI analysis failed: {e}") from e

        if not resp.choices:
            raise ExtractionError("OpenAI returned no choices")
        return resp.choices[0].message.content or ""
