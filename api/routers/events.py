"""Relationship event API endpoints (create, list, update, delete)."""

import logging
import math
from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_database
from api.schemas import EventCreateRequest
from unmask.db import RelationshipEvent, UnmaskDB
from unmask.errors import ErrorCode, ValidationError, record_not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/relationship-events", tags=["tracking"])

REQUIRED_EVENT_FIELDS = ("event_date", "event_type", "title")


@router.get("", summary="List relationship events")
def list_events(
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    event_type: str | None = Query(default=None),
    category: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    page: int = Query(default=1, ge=1),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """Events newest first, each with a ``days_ago`` field."""
    events, total = db.list_events(
        start_date=start_date,
        end_date=end_date,
        event_type=event_type,
        category=category,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "success": True,
        "data": events,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.post("", summary="Log a relationship event")
def create_event(
    body: EventCreateRequest,
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    missing = [name for name in REQUIRED_EVENT_FIELDS if not getattr(body, name)]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(REQUIRED_EVENT_FIELDS)}",
            field=missing[0],
            code=ErrorCode.VAL_MISSING_REQUIRED,
        )
    event = db.create_event(RelationshipEvent(id=None, **body.model_dump()))
    logger.info("Created relationship event %s (%s)", event.id, event.event_type)
    return {"success": True, "data": event.to_dict()}


@router.get("/{event_id}", summary="Get one relationship event")
def get_event(event_id: int, db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    event = db.get_event(event_id)
    if event is None:
        raise record_not_found("relationship_events", event_id)
    return {"success": True, "data": event.to_dict()}


@router.put("/{event_id}", summary="Update a relationship event")
def update_event(
    event_id: int,
    updates: dict[str, Any] = Body(...),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    event = db.update_event(event_id, updates)
    return {"success": True, "data": event.to_dict()}


@router.delete("/{event_id}", summary="Delete a relationship event")
def delete_event(event_id: int, db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    db.delete_event(event_id)
    logger.info("Deleted relationship event %d", event_id)
    return {"success": True, "message": "Event deleted successfully"}
