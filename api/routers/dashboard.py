"""Dashboard API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_database
from unmask.db import UnmaskDB
from unmask.insights import dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", summary="Dashboard statistics")
def stats(db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    """Headline numbers: totals, years of data, participants, monthly volume."""
    return dashboard_stats(db)
