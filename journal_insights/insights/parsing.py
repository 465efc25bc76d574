import json
import logging
import re
from typing import Any, List

from pydantic import ValidationError

from journal_insights.core.errors import ExtractionError
from journal_insights.insights.reconcile import prepare_candidates
from journal_insights.insights.schemas import CandidateTheme, ThemeExtractionResponse

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def extract_json_object(text: str) -> str:
    """
    Pulls the JSON object out of a model reply.

    Handles replies wrapped in ```json fences or surrounded by prose by taking
    the span from the first "{" to the last "}".
    """
    s = text.strip()
    match = _JSON_FENCE_RE.search(s)
    if match:
        s = match.group(1).strip()
    start = s.find("{")
    end = s.rfind("}")
    if start == -1 or end <= start:
        raise ExtractionError("No JSON object found in theme extraction response")
    return s[start : end + 1]


def parse_theme_response(text: Any) -> List[CandidateTheme]:
    """
    Validates an extraction reply and returns its well-formed candidates.

    Args:
        text (Any): Raw reply text from the extraction provider.

    Returns:
        List[CandidateTheme]: Candidates in the order received. Empty when the
        reply holds an empty `themes` list.

    Raises:
        ExtractionError: If the reply is empty, is not JSON, or is not an
            object with a `themes` array.
    """
    if not isinstance(text, str) or not text.strip():
        raise ExtractionError("Theme extraction returned an empty response")

    try:
        payload = json.loads(extract_json_object(text))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Failed to parse themes from extraction response: {e}") from e

    if not isinstance(payload, dict):
        raise ExtractionError("Theme extraction response is not a JSON object")

    try:
        response = ThemeExtractionResponse.model_validate(payload)
    except ValidationError as e:
        raise ExtractionError(f"Theme extraction response has an invalid shape: {e.error_count()} error(s)") from e

    candidates = prepare_candidates(response.themes)
    dropped = len(response.themes) - len(candidates)
    if dropped:
        logger.warning(f"Dropped {dropped} malformed theme record(s) from extraction response")
    return candidates
