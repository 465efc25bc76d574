import json
import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

# Configure before the application modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["INSIGHTS_PROVIDER"] = "openai"
os.environ["INSIGHTS_TIMEZONE"] = "UTC"

from fastapi.testclient import TestClient  # noqa: E402

from journal_insights.auth.service import create_token  # noqa: E402
from journal_insights.core.database import Base, SessionLocal, engine  # noqa: E402
from journal_insights.core.dependency import get_extraction_service  # noqa: E402
from journal_insights.insights.ai_providers.base import ThemeExtractionService  # noqa: E402
from journal_insights.insights.models import Insight  # noqa: E402
from journal_insights.journals.models import JournalEntry  # noqa: E402
from journal_insights.main import app  # noqa: E402

BASE_TIME = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeExtractionService(ThemeExtractionService):
    """Returns a canned reply and records every prompt it receives."""

    model_tag = "fake"

    def __init__(self, reply: str = '{"themes": []}', error: Exception = None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def themes_reply(*themes) -> str:
    """Builds an extraction reply from (title, score) pairs."""
    return json.dumps(
        {
            "themes": [
                {
                    "title": title,
                    "summary": f"You often write about {title.lower()}.",
                    "quotes": [f"A line about {title.lower()}."],
                    "prominence_score": score,
                }
                for title, score in themes
            ]
        }
    )


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_token(user_id)}"}


@pytest.fixture
def fake_extractor():
    return FakeExtractionService()


@pytest.fixture
def client(db, fake_extractor):
    app.dependency_overrides[get_extraction_service] = lambda: fake_extractor
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def add_entries(db):
    def _add(user_id, count, entry_type="individual", start=BASE_TIME):
        entries = []
        for i in range(count):
            created = start + timedelta(hours=i)
            entry = JournalEntry(
                id=uuid4(),
                user_id=user_id,
                content=f"entry number {i:03d}",
                entry_date=created.date(),
                entry_type=entry_type,
                created_at=created,
            )
            db.add(entry)
            entries.append(entry)
        db.commit()
        return entries

    return _add


@pytest.fixture
def add_insights(db):
    def _add(user_id, themes, start=BASE_TIME):
        rows = []
        for i, (title, score) in enumerate(themes):
            stamp = start + timedelta(days=i)
            row = Insight(
                id=uuid4(),
                user_id=user_id,
                title=title,
                summary=f"Summary of {title}.",
                quotes=[f"Quote about {title}."],
                prominence_score=score,
                last_updated=stamp,
                created_at=stamp,
            )
            db.add(row)
            rows.append(row)
        db.commit()
        return rows

    return _add
