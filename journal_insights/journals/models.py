import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Date, DateTime, Uuid
from journal_insights.core.database import Base


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), index=True, nullable=False)

    title = Column(String, nullable=True)
    content = Column(String, nullable=False)
    entry_date = Column(Date, nullable=False)
    entry_type = Column(String, nullable=False, default="individual")  # individual, daily_summary
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
