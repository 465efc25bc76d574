import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from journal_insights.core.config import INSIGHTS_MAX_THEMES
from journal_insights.insights.parsing import parse_theme_response
from journal_insights.insights.schemas import CandidateTheme
import journal_insights.insights.prompts.theme_prompts_templates as prompts

logger = logging.getLogger(__name__)


def build_theme_prompt(entries_text: str, existing_titles: Sequence[str] = ()) -> str:
    if existing_titles:
        tracked = "\n".join(prompts.TRACKED_THEME_LINE_TEMPLATE.format(title=t) for t in existing_titles)
    else:
        tracked = prompts.NO_TRACKED_THEMES
    return prompts.THEME_ANALYSIS_PROMPT.format(
        min_themes=prompts.MIN_THEMES,
        max_themes=prompts.MAX_THEMES,
        retained_themes=INSIGHTS_MAX_THEMES,
        tracked_themes=tracked,
        entries_text=entries_text,
    )


class ThemeExtractionService(ABC):
    """Turns a journal corpus into candidate themes through a language model."""

    model_tag: str

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Sends the prompt and returns the raw reply text.

        Raises:
            ExtractionError: On transport failures, error responses or timeouts.
        """

    def extract_themes(self, entries_text: str, existing_titles: Sequence[str] = ()) -> List[CandidateTheme]:
        """
        Runs theme extraction over the rendered entries.

        Args:
            entries_text (str): Date-prefixed journal entries.
            existing_titles (Sequence[str]): Titles of the themes already retained, offered for reuse.

        Raises:
            ExtractionError: If the call fails or the reply cannot be parsed.
        """
        prompt = build_theme_prompt(entries_text, existing_titles)
        logger.debug(f"Requesting themes from {self.model_tag} ({len(prompt)} prompt chars)")
        raw = self.complete(prompt)
        return parse_theme_response(raw)
