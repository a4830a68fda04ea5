"""Relationship tracker API endpoints.

Rows are returned in the dashboard table shape: ``header`` is the
relationship name, ``type`` the partner name and ``status`` the start date.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_database
from api.schemas import TrackerCreateRequest, TrackerUpdateRequest
from unmask.db import UnmaskDB

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/relationship-tracker", tags=["tracking"])

# Dashboard table columns -> stored columns
TABLE_FIELDS = {"header": "name", "type": "partner_name", "status": "start_date"}


@router.get("", summary="List tracked relationships")
def list_tracker(db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    return {"data": [entry.to_table_row() for entry in db.list_tracker()]}


@router.post("", summary="Track a relationship")
def add_tracker_entry(
    body: TrackerCreateRequest,
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    entry = db.add_tracker_entry(
        body.name,
        partner_name=body.partner_name,
        start_date=body.start_date,
        status=body.status,
    )
    logger.info("Added tracker entry %s", entry.id)
    return {"success": True, "data": entry.to_table_row()}


@router.put("/{entry_id}", summary="Update one tracker field")
def update_tracker_entry(
    entry_id: int,
    body: TrackerUpdateRequest,
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """Set one field. Table column names (header, type, status) are accepted."""
    column = TABLE_FIELDS.get(body.field, body.field)
    entry = db.update_tracker_field(entry_id, column, body.value)
    return {"success": True, "data": entry.to_table_row()}
