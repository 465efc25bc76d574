import datetime
from uuid import UUID
from typing import List, Optional

from sqlalchemy.orm import Session
from journal_insights.insights.models import Insight, InsightRun
from journal_insights.insights.schemas import Theme

SUCCESSFUL_RUN_STATUSES = ("completed", "partial")


def get_user_insights(db: Session, user_id: UUID) -> List[Insight]:
    """
    Retrieves all retained themes for a user, strongest first.

    Args:
        db (Session): SQLAlchemy session.
        user_id (UUID): ID of the user.

    Returns:
        List[Insight]: Themes ordered by prominence descending, then oldest first.
    """
    return (
        db.query(Insight)
        .filter(Insight.user_id == user_id)
        .order_by(Insight.prominence_score.desc(), Insight.created_at.asc())
        .all()
    )


def get_insight(db: Session, insight_id: UUID, user_id: UUID) -> Optional[Insight]:
    return db.query(Insight).filter(
        Insight.id == insight_id,
        Insight.user_id == user_id
    ).first()


def create_insight(db: Session, theme: Theme, user_id: UUID) -> Insight:
    """
    Inserts a theme produced by reconciliation, keeping its identity and timestamps.
    """
    insight = Insight(
        id=theme.id,
        user_id=user_id,
        title=theme.title,
        summary=theme.summary,
        quotes=list(theme.quotes),
        prominence_score=theme.prominence_score,
        last_updated=theme.last_updated,
        created_at=theme.created_at,
    )
    db.add(insight)
    db.commit()
    db.refresh(insight)
    return insight


def update_insight(db: Session, theme: Theme, user_id: UUID) -> Optional[Insight]:
    """
    Writes a theme's mutable fields onto the stored row with the same ID.

    Returns:
        Optional[Insight]: The updated row, or None if it no longer exists.
    """
    insight = get_insight(db, theme.id, user_id)
    if insight is None:
        return None
    insight.title = theme.title
    insight.summary = theme.summary
    insight.quotes = list(theme.quotes)
    insight.prominence_score = theme.prominence_score
    insight.last_updated = theme.last_updated
    db.commit()
    db.refresh(insight)
    return insight


def delete_insight(db: Session, insight_id: UUID, user_id: UUID) -> Optional[Insight]:
    """
    Deletes a theme owned by the user.

    Returns:
        Optional[Insight]: Deleted object or None.
    """
    insight = get_insight(db, insight_id, user_id)
    if insight:
        db.delete(insight)
        db.commit()
        return insight
    return None


def create_insight_run(db: Session, user_id: UUID, started_at: datetime.datetime) -> InsightRun:
    run = InsightRun(user_id=user_id, started_at=started_at, status="running")
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def finish_insight_run(
    db: Session,
    run: InsightRun,
    status: str,
    updated_count: int = 0,
    created_count: int = 0,
    skipped_count: int = 0,
    failed_count: int = 0,
    error: Optional[str] = None,
) -> InsightRun:
    """
    Records the outcome of a reconciliation run.
    """
    run.status = status
    run.updated_count = updated_count
    run.created_count = created_count
    run.skipped_count = skipped_count
    run.failed_count = failed_count
    run.error = error
    run.completed_at = datetime.datetime.now(datetime.timezone.utc)
    db.commit()
    db.refresh(run)
    return run


def get_last_successful_run(db: Session, user_id: UUID) -> Optional[InsightRun]:
    """
    Retrieves the user's most recent run that completed, fully or partially.
    """
    return (
        db.query(InsightRun)
        .filter(
            InsightRun.user_id == user_id,
            InsightRun.status.in_(SUCCESSFUL_RUN_STATUSES),
        )
        .order_by(InsightRun.started_at.desc())
        .first()
    )


def get_user_insight_runs(db: Session, user_id: UUID, skip: int = 0, limit: int = 20) -> List[InsightRun]:
    return (
        db.query(InsightRun)
        .filter(InsightRun.user_id == user_id)
        .order_by(InsightRun.started_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
