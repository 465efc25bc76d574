import datetime
import logging
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from journal_insights.core.config import (
    INSIGHTS_MAX_ENTRIES,
    INSIGHTS_MIN_ENTRIES,
    INSIGHTS_TIMEZONE,
)
from journal_insights.core.errors import (
    ExtractionError,
    InsufficientDataError,
    WeeklyLimitReachedError,
)
from journal_insights.core.locks import UserLockRegistry, insight_run_locks
from journal_insights.insights.ai_providers.base import ThemeExtractionService
from journal_insights.insights.db import (
    create_insight,
    create_insight_run,
    finish_insight_run,
    get_last_successful_run,
    get_user_insights,
    update_insight,
)
from journal_insights.insights.reconcile import reconcile
from journal_insights.insights.schemas import (
    InsightRunReport,
    InsightStatus,
    ReconciliationResult,
    ReplacedTheme,
    Theme,
)
from journal_insights.journals.db import count_individual_entries, get_recent_individual_entries
from journal_insights.journals.models import JournalEntry
import journal_insights.insights.prompts.theme_prompts_templates as prompts

logger = logging.getLogger(__name__)


def _as_aware(dt: datetime.datetime) -> datetime.datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def resolve_timezone(name: Optional[str] = None) -> ZoneInfo:
    """
    Resolves an IANA timezone name, defaulting to INSIGHTS_TIMEZONE.

    Raises:
        ValueError: If the name is not a known timezone.
    """
    zone_name = name or INSIGHTS_TIMEZONE
    try:
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{zone_name}'") from e


def start_of_week(now: datetime.datetime, tz: ZoneInfo) -> datetime.datetime:
    """Returns Monday 00:00 of the week containing `now`, in `tz`."""
    local = _as_aware(now).astimezone(tz)
    monday = local.date() - datetime.timedelta(days=local.weekday())
    return datetime.datetime.combine(monday, datetime.time.min, tzinfo=tz)


def start_of_next_week(now: datetime.datetime, tz: ZoneInfo) -> datetime.datetime:
    next_monday = start_of_week(now, tz).date() + datetime.timedelta(days=7)
    return datetime.datetime.combine(next_monday, datetime.time.min, tzinfo=tz)


def insights_generated_this_week(
    db: Session,
    user_id: UUID,
    now: Optional[datetime.datetime] = None,
    tz: Optional[ZoneInfo] = None,
) -> bool:
    """
    Checks whether a successful reconciliation run started in the current week.

    Args:
        db (Session): SQLAlchemy session.
        user_id (UUID): ID of the user.
        now (Optional[datetime.datetime]): Reference time, defaults to now.
        tz (Optional[ZoneInfo]): Timezone the week is measured in.

    Returns:
        bool: True if the user already had insights generated this week.
    """
    last_run = get_last_successful_run(db, user_id)
    if last_run is None:
        return False
    now = now or datetime.datetime.now(datetime.timezone.utc)
    tz = tz or resolve_timezone()
    return _as_aware(last_run.started_at) >= start_of_week(now, tz)


def get_insight_status(
    db: Session,
    user_id: UUID,
    now: Optional[datetime.datetime] = None,
    tz: Optional[ZoneInfo] = None,
) -> InsightStatus:
    """
    Summarizes whether the user may generate insights now and when next.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)
    tz = tz or resolve_timezone()
    last_run = get_last_successful_run(db, user_id)
    last_run_at = _as_aware(last_run.started_at) if last_run else None
    generated = last_run_at is not None and last_run_at >= start_of_week(now, tz)
    entry_count = count_individual_entries(db, user_id)

    return InsightStatus(
        generated_this_week=generated,
        can_generate=not generated and entry_count >= INSIGHTS_MIN_ENTRIES,
        last_run_at=last_run_at,
        next_eligible_at=start_of_next_week(now, tz) if generated else start_of_week(now, tz),
        entry_count=entry_count,
        min_entries=INSIGHTS_MIN_ENTRIES,
    )


def render_entries(entries: Iterable[JournalEntry]) -> str:
    """Renders entries as date-prefixed blocks separated by blank lines."""
    return "\n\n".join(
        prompts.ENTRY_LINE_TEMPLATE.format(
            entry_date=entry.entry_date.isoformat(), content=(entry.content or "").strip()
        )
        for entry in entries
    )


def persist_reconciliation(
    db: Session,
    user_id: UUID,
    result: ReconciliationResult,
    existing_ids: Set[UUID],
) -> Tuple[List[Theme], List[Theme], List[Theme]]:
    """
    Writes every changed theme independently; one failed write never blocks the rest.

    Returns:
        Tuple containing:
            - Updated themes that were saved.
            - Created (inserted or replaced) themes that were saved.
            - Themes whose write failed.
    """
    saved_updated: List[Theme] = []
    saved_created: List[Theme] = []
    failed: List[Theme] = []

    def _write(theme: Theme, insert: bool) -> bool:
        try:
            if insert:
                create_insight(db, theme, user_id)
            elif update_insight(db, theme, user_id) is None:
                logger.error(f"Theme \"{theme.title}\" ({theme.id}) no longer exists for user {user_id}")
                return False
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error saving theme \"{theme.title}\" for user {user_id}: {e}")
            return False

    for theme in result.updated:
        if _write(theme, insert=False):
            logger.info(f"Updated existing theme: {theme.title}")
            saved_updated.append(theme)
        else:
            failed.append(theme)

    for theme in result.created:
        if _write(theme, insert=theme.id not in existing_ids):
            logger.info(f"Saved new theme: {theme.title}")
            saved_created.append(theme)
        else:
            failed.append(theme)

    return saved_updated, saved_created, failed


def _replaced_pairs(result: ReconciliationResult, saved_created: List[Theme]) -> List[ReplacedTheme]:
    saved_by_id = {t.id: t for t in saved_created}
    pairs = []
    for previous in result.evicted:
        current = saved_by_id.get(previous.id)
        if current is None:
            continue
        pairs.append(
            ReplacedTheme(
                previous_title=previous.title,
                title=current.title,
                previous_score=previous.prominence_score,
                prominence_score=current.prominence_score,
            )
        )
    return pairs


def generate_insights(
    db: Session,
    user_id: UUID,
    extraction_service: ThemeExtractionService,
    now: Optional[datetime.datetime] = None,
    tz: Optional[ZoneInfo] = None,
    enforce_weekly_limit: bool = True,
    locks: UserLockRegistry = insight_run_locks,
) -> InsightRunReport:
    """
    Runs one reconciliation for a user: gate, extract, reconcile, persist.

    Args:
        db (Session): SQLAlchemy session.
        user_id (UUID): ID of the user.
        extraction_service (ThemeExtractionService): Provider used for theme extraction.
        now (Optional[datetime.datetime]): Run timestamp, defaults to now.
        tz (Optional[ZoneInfo]): Timezone for the weekly gate.
        enforce_weekly_limit (bool): Refuse to run twice in the same calendar week.
        locks (UserLockRegistry): Per-user run guard.

    Returns:
        InsightRunReport: Outcome and counts of the run.

    Raises:
        InsightRunInProgressError: If a run for this user is already executing.
        WeeklyLimitReachedError: If insights were already generated this week.
        InsufficientDataError: If the user has too few entries; extraction is never called.
        ExtractionError: If extraction fails; nothing is written.

    Any other error once the run record exists marks the run failed and is re-raised.
    """
    with locks.hold(user_id):
        now = now or datetime.datetime.now(datetime.timezone.utc)
        logger.info(f"Generating insights for user: {user_id}")

        if enforce_weekly_limit and insights_generated_this_week(db, user_id, now, tz):
            raise WeeklyLimitReachedError(f"Insights already generated this week for user {user_id}")

        entry_count = count_individual_entries(db, user_id)
        if entry_count < INSIGHTS_MIN_ENTRIES:
            raise InsufficientDataError(entry_count, INSIGHTS_MIN_ENTRIES)

        existing = [Theme.model_validate(i) for i in get_user_insights(db, user_id)]
        logger.info(f"Found {len(existing)} existing themes")

        entries = get_recent_individual_entries(db, user_id, limit=INSIGHTS_MAX_ENTRIES)
        logger.info(f"Analyzing {len(entries)} journal entries for insights")

        run = create_insight_run(db, user_id, now)
        try:
            candidates = extraction_service.extract_themes(
                render_entries(entries), existing_titles=[t.title for t in existing]
            )
            if not candidates:
                logger.info(f"No recurring themes found for user {user_id}; existing themes unchanged")

            result = reconcile(existing, candidates, now=now)
            saved_updated, saved_created, failed = persist_reconciliation(
                db, user_id, result, {t.id for t in existing}
            )

            status = "partial" if failed else "completed"
            finish_insight_run(
                db,
                run,
                status,
                updated_count=len(saved_updated),
                created_count=len(saved_created),
                skipped_count=len(result.skipped),
                failed_count=len(failed),
            )
        except ExtractionError as e:
            logger.error(f"Theme extraction failed for user {user_id}: {e.message}")
            finish_insight_run(db, run, "failed", error=e.message[:1000])
            raise
        except Exception as e:
            logger.error(f"Insight run failed for user {user_id}: {e}")
            db.rollback()
            finish_insight_run(db, run, "failed", error=(str(e) or type(e).__name__)[:1000])
            raise

        logger.info(
            f"Insights generation {status}: {len(saved_updated)} updated, "
            f"{len(saved_created)} new/replaced, {len(result.skipped)} skipped, {len(failed)} failed"
        )

        return InsightRunReport(
            run_id=run.id,
            status=status,
            updated_count=len(saved_updated),
            created_count=len(saved_created),
            skipped_count=len(result.skipped),
            failed_count=len(failed),
            updated=[t.title for t in saved_updated],
            created=[t.title for t in saved_created],
            skipped=[c.title for c in result.skipped],
            failed=[t.title for t in failed],
            replaced=_replaced_pairs(result, saved_created),
        )
