"""
Database configuration and session management for SQLAlchemy.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from journal_insights.core.config import DATABASE_URL


def build_engine(url: str):
    """
    Creates an engine for the given URL.

    SQLite connections are shared across threads so the FastAPI threadpool
    and in-memory test databases see the same connection.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


# Engine & Session
engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)

# Declarative Base
Base = declarative_base()

# Import all models to register them with the Base metadata
import journal_insights.journals.models  # noqa: F401,E402
import journal_insights.insights.models  # noqa: F401,E402


# Dependency for FastAPI Routes
def get_db():
    """
    Yields a database session for use in FastAPI dependency injection.
    Ensures the session is closed after the request lifecycle.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
