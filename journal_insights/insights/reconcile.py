"""
Theme reconciliation: merges a freshly extracted candidate set into a user's
retained themes.

The retained set is capped (10 by default). Each candidate, strongest first,
either refreshes the theme with the same title (case-insensitive, exact),
fills a free slot, or replaces the weakest theme not already touched in this
run when it scores strictly higher. Everything here is pure: inputs are never
mutated and the caller persists the returned themes.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union
from uuid import UUID, uuid4

from journal_insights.core.config import INSIGHTS_MAX_THEMES
from journal_insights.insights.schemas import CandidateTheme, ReconciliationResult, Theme

logger = logging.getLogger(__name__)

MAX_PROMINENCE = 100

CandidateLike = Union[CandidateTheme, Mapping[str, Any]]


def normalize_title(title: str) -> str:
    return title.strip().lower()


def _as_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _coerce_score(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    # Half-up rounding; positive fractions below 1 count as 1
    return min(max(int(math.floor(value + 0.5)), 1), MAX_PROMINENCE)


def _coerce_quotes(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [q for q in value if isinstance(q, str) and q.strip()]


def coerce_candidate(record: CandidateLike) -> Optional[CandidateTheme]:
    """
    Turns one raw extraction record into a CandidateTheme.

    Returns None for records without a usable title or without a positive
    numeric prominence score. Scores above 100 are clamped, fractional
    scores are rounded half up, with a floor of 1.
    """
    if isinstance(record, CandidateTheme):
        return record
    if not isinstance(record, Mapping):
        return None

    title = record.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    raw_score = record.get("prominence_score", record.get("prominenceScore"))
    score = _coerce_score(raw_score)
    if score is None:
        return None

    summary = record.get("summary")
    return CandidateTheme(
        title=title.strip(),
        summary=summary.strip() if isinstance(summary, str) else "",
        quotes=_coerce_quotes(record.get("quotes")),
        prominence_score=score,
    )


def prepare_candidates(records: Iterable[CandidateLike]) -> List[CandidateTheme]:
    """Drops malformed records, keeping the order they were received in."""
    prepared: List[CandidateTheme] = []
    for record in records:
        candidate = coerce_candidate(record)
        if candidate is None:
            logger.warning(f"Dropping malformed theme record: {record!r:.200}")
            continue
        prepared.append(candidate)
    return prepared


def candidate_sort_key(candidate: CandidateTheme) -> int:
    # Used with the stable built-in sort: equal scores keep extraction order.
    return -candidate.prominence_score


def eviction_key(indexed: Tuple[int, Theme]) -> Tuple[int, float, int]:
    """
    Orders eviction targets: lowest score first, then most recently created,
    then the one listed later in the retained set. The oldest theme survives ties.
    """
    position, theme = indexed
    return (theme.prominence_score, -_as_aware(theme.created_at).timestamp(), -position)


def reconcile(
    existing_themes: Sequence[Theme],
    candidates: Iterable[CandidateLike],
    *,
    now: Optional[datetime] = None,
    new_id: Callable[[], UUID] = uuid4,
    max_themes: int = INSIGHTS_MAX_THEMES,
) -> ReconciliationResult:
    """
    Reconciles candidate themes against the retained set.

    Args:
        existing_themes (Sequence[Theme]): The user's full retained set.
        candidates (Iterable[CandidateLike]): Candidates from one extraction run.
        now (Optional[datetime]): Run timestamp applied to every change.
        new_id (Callable[[], UUID]): Identity factory for inserted themes.
        max_themes (int): Capacity of the retained set.

    Returns:
        ReconciliationResult: Updated themes, created themes (inserted or
        replaced in place), skipped candidates, and the prior state of
        replaced themes.

    Raises:
        ValueError: If the retained set is already above capacity.
    """
    if len(existing_themes) > max_themes:
        raise ValueError(
            f"Retained theme set has {len(existing_themes)} themes, more than the limit of {max_themes}"
        )

    result = ReconciliationResult()
    ordered = sorted(prepare_candidates(candidates), key=candidate_sort_key)
    if not ordered:
        return result

    now = now or datetime.now(timezone.utc)
    retained: List[Theme] = list(existing_themes)
    by_title: Dict[str, int] = {normalize_title(t.title): i for i, t in enumerate(retained)}
    touched: Set[int] = set()
    seen_titles: Set[str] = set()
    inserted = 0

    for candidate in ordered:
        key = normalize_title(candidate.title)
        if key in seen_titles:
            logger.info(f"Skipping duplicate theme \"{candidate.title}\" in the same run")
            result.skipped.append(candidate)
            continue
        seen_titles.add(key)

        position = by_title.get(key)
        if position is not None:
            refreshed = retained[position].model_copy(
                update={
                    "summary": candidate.summary,
                    "quotes": list(candidate.quotes),
                    "prominence_score": candidate.prominence_score,
                    "last_updated": now,
                }
            )
            retained[position] = refreshed
            touched.add(position)
            result.updated.append(refreshed)
            continue

        if len(retained) + inserted < max_themes:
            result.created.append(
                Theme(
                    id=new_id(),
                    title=candidate.title,
                    summary=candidate.summary,
                    quotes=list(candidate.quotes),
                    prominence_score=candidate.prominence_score,
                    last_updated=now,
                    created_at=now,
                )
            )
            inserted += 1
            continue

        eligible = [(p, t) for p, t in enumerate(retained) if p not in touched]
        if not eligible:
            logger.info(f"Skipping theme \"{candidate.title}\": every retained theme was already refreshed this run")
            result.skipped.append(candidate)
            continue

        position, weakest = min(eligible, key=eviction_key)
        if candidate.prominence_score <= weakest.prominence_score:
            logger.info(
                f"Skipping theme \"{candidate.title}\" (prominence: {candidate.prominence_score}) - "
                f"not higher than lowest existing theme \"{weakest.title}\" (prominence: {weakest.prominence_score})"
            )
            result.skipped.append(candidate)
            continue

        replacement = weakest.model_copy(
            update={
                "title": candidate.title,
                "summary": candidate.summary,
                "quotes": list(candidate.quotes),
                "prominence_score": candidate.prominence_score,
                "last_updated": now,
            }
        )
        retained[position] = replacement
        touched.add(position)
        old_key = normalize_title(weakest.title)
        if by_title.get(old_key) == position:
            del by_title[old_key]
        result.created.append(replacement)
        result.evicted.append(weakest)

    return result


def apply_reconciliation(existing_themes: Sequence[Theme], result: ReconciliationResult) -> List[Theme]:
    """
    Returns the retained set after applying a reconciliation result, ordered
    by prominence (highest first) and then by creation time.
    """
    by_id: Dict[UUID, Theme] = {t.id: t for t in existing_themes}
    for theme in [*result.updated, *result.created]:
        by_id[theme.id] = theme
    return sorted(
        by_id.values(),
        key=lambda t: (-t.prominence_score, _as_aware(t.created_at)),
    )
