import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, JSON, CheckConstraint, Uuid
from journal_insights.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Insight(Base):
    __tablename__ = "insights"
    __table_args__ = (
        CheckConstraint(
            "prominence_score >= 1 AND prominence_score <= 100", name="check_prominence_score"
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    title = Column(String, nullable=False)
    summary = Column(String, nullable=False)
    quotes = Column(JSON, nullable=False, default=list)  # list[str]
    prominence_score = Column(Integer, nullable=False, default=50)

    last_updated = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class InsightRun(Base):
    __tablename__ = "insight_runs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String, nullable=False, default="running")  # running | completed | partial | failed

    updated_count = Column(Integer, nullable=False, default=0)
    created_count = Column(Integer, nullable=False, default=0)
    skipped_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)
    error = Column(String, nullable=True)
