from uuid import UUID
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Session
from journal_insights.journals.models import JournalEntry

INDIVIDUAL_ENTRY = "individual"


def count_individual_entries(db: Session, user_id: UUID) -> int:
    """
    Counts the user's individual (non-summary) journal entries.
    """
    return (
        db.query(func.count(JournalEntry.id))
        .filter(JournalEntry.user_id == user_id, JournalEntry.entry_type == INDIVIDUAL_ENTRY)
        .scalar()
    ) or 0


def get_recent_individual_entries(db: Session, user_id: UUID, limit: Optional[int] = None) -> List[JournalEntry]:
    """
    Retrieves the user's most recent individual entries in chronological order.

    Args:
        db (Session): SQLAlchemy session.
        user_id (UUID): ID of the user.
        limit (Optional[int]): Keep only the newest `limit` entries.

    Returns:
        List[JournalEntry]: Entries ordered oldest to newest.
    """
    query = (
        db.query(JournalEntry)
        .filter(JournalEntry.user_id == user_id, JournalEntry.entry_type == INDIVIDUAL_ENTRY)
        .order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return list(reversed(query.all()))
