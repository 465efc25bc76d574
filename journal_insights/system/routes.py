import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from journal_insights.core.database import get_db
from journal_insights.system.schemas import HealthResponse

router = APIRouter(prefix="/system", tags=["System"])
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
def health_route(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"

    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        database=database,
        version=API_VERSION,
    )
