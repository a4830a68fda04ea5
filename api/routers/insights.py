"""Insight report API endpoints.

All reports are computed from stored messages on request; none of them
call the LLM.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_database
from unmask.db import UnmaskDB
from unmask.insights import analyze_patterns, health_assessment, message_summary, timeline

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("/generate", summary="Message summary")
def generate(db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    """Totals by sender, day and month, sentiment overview and streaks."""
    return message_summary(db)


@router.get("/health-score", summary="Relationship health score")
def health_score(
    user_id: str | None = Query(default=None, alias="userId"),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """Score the latest 30 days of messages against the 30 before.

    When ``userId`` is given the score is added to that user's history.
    """
    return health_assessment(db, user_id=user_id)


@router.get("/patterns", summary="Communication patterns")
def patterns(
    timeframe: str = Query(default="30d", description="7d, 30d, 90d or 1y"),
    analysis_type: str = Query(default="communication", alias="type"),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    return analyze_patterns(db, timeframe, analysis_type)


@router.get("/timeline", summary="Notable days and milestones")
def get_timeline(
    start: str | None = Query(default=None, description="Inclusive start date (YYYY-MM-DD)"),
    end: str | None = Query(default=None, description="Inclusive end date (YYYY-MM-DD)"),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    return timeline(db, start, end)
