from uuid import UUID
from typing import Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Security
from sqlalchemy.orm import Session

from journal_insights.auth.service import get_current_user_id
from journal_insights.core.database import get_db
from journal_insights.core.dependency import get_extraction_service
from journal_insights.core.errors import InsightsError
from journal_insights.insights.ai_providers.base import ThemeExtractionService
from journal_insights.insights.db import delete_insight, get_user_insight_runs, get_user_insights
from journal_insights.insights.schemas import InsightRunBase, InsightRunReport, InsightStatus, Theme
from journal_insights.insights.service import generate_insights, get_insight_status, resolve_timezone

router = APIRouter(prefix="/insights", tags=["Insights"])
logger = logging.getLogger(__name__)


@router.get(
    "",
    response_model=List[Theme],
    summary="Get retained insight themes",
    description="Retrieve the user's retained themes, strongest first.",
    responses={
        200: {"description": "Themes retrieved successfully."},
        401: {"description": "Unauthorized."},
        500: {"description": "Failed to retrieve themes."},
    },
)
def get_insights_route(
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> List[Theme]:
    try:
        return get_user_insights(db, user_id)
    except Exception as e:
        logger.error(f"Error fetching insights for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch insights")


@router.get(
    "/status",
    response_model=InsightStatus,
    summary="Get weekly insight status",
    description="""
                Report whether insights were already generated this calendar week (weeks start Monday 00:00
                in the given timezone), when the next run is allowed, and whether there are enough entries.
                """,
    responses={
        200: {"description": "Status retrieved successfully."},
        400: {"description": "Unknown timezone."},
        401: {"description": "Unauthorized."},
        500: {"description": "Failed to retrieve status."},
    },
)
def get_insight_status_route(
    tz: Optional[str] = Query(None, description="IANA timezone name, e.g. Europe/Berlin."),
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> InsightStatus:
    try:
        zone = resolve_timezone(tz)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return get_insight_status(db, user_id, tz=zone)
    except Exception as e:
        logger.error(f"Error checking insight status for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve insight status")


@router.post(
    "/generate",
    response_model=InsightRunReport,
    summary="Generate new insights",
    description="""
                Analyze the user's recent journal entries and reconcile the extracted themes with the
                retained top themes. Allowed once per calendar week and only with enough entries.
                """,
    responses={
        200: {"description": "Insights generated; the report may be partial if some writes failed."},
        400: {"description": "Unknown timezone."},
        401: {"description": "Unauthorized."},
        409: {"description": "A run for this user is already in progress."},
        422: {"description": "Not enough journal entries."},
        429: {"description": "Insights were already generated this week."},
        502: {"description": "Theme extraction failed."},
        500: {"description": "Failed to generate insights."},
    },
)
def generate_insights_route(
    tz: Optional[str] = Query(None, description="IANA timezone name used for the weekly limit."),
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
    extraction_service: ThemeExtractionService = Depends(get_extraction_service),
) -> InsightRunReport:
    try:
        zone = resolve_timezone(tz)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return generate_insights(db, user_id, extraction_service, tz=zone)
    except InsightsError as e:
        logger.warning(f"Insight generation refused for user {user_id}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.user_message)
    except Exception as e:
        logger.error(f"Error generating insights for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate insights")


@router.get(
    "/runs",
    response_model=List[InsightRunBase],
    summary="Get recent insight runs",
    description="Retrieve the user's recent reconciliation runs with their counts, newest first.",
    responses={
        200: {"description": "Runs retrieved successfully."},
        401: {"description": "Unauthorized."},
        500: {"description": "Failed to retrieve runs."},
    },
)
def get_insight_runs_route(
    skip: int = 0,
    limit: int = 20,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> List[InsightRunBase]:
    try:
        return get_user_insight_runs(db, user_id, skip, limit)
    except Exception as e:
        logger.error(f"Error fetching insight runs for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch insight runs")


@router.delete(
    "/{insight_id}",
    response_model=Dict[str, str],
    summary="Delete an insight theme",
    description="Remove one retained theme owned by the user.",
    responses={
        200: {"description": "Theme deleted successfully."},
        401: {"description": "Unauthorized."},
        404: {"description": "Theme not found."},
        500: {"description": "Failed to delete theme."},
    },
)
def delete_insight_route(
    insight_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Security(get_current_user_id),
) -> Dict[str, str]:
    try:
        deleted = delete_insight(db, insight_id, user_id)
    except Exception as e:
        logger.error(f"Error deleting insight {insight_id} for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete insight")

    if deleted is None:
        raise HTTPException(status_code=404, detail="Insight not found")
    logger.info(f"Insight deleted successfully: {insight_id}")
    return {"detail": "Insight deleted successfully."}
