"""Conversation chunk API endpoints.

Chunks are produced by ``/vectorize/populate``: each one is a run of
messages with no gap longer than the configured threshold.
"""

import math
from typing import Any

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_database
from api.schemas import ConversationInsightsRequest
from unmask.db import UnmaskDB
from unmask.insights import conversation_insights

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", summary="List conversation chunks")
def list_conversations(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=200),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """List stored conversation chunks, newest first."""
    offset = (page - 1) * limit
    total = db.count_chunks()
    chunks = db.list_chunks(limit=limit, offset=offset)
    return {
        "conversations": [c.to_dict() for c in chunks],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
            "hasNextPage": offset + limit < total,
            "hasPrevPage": page > 1,
        },
    }


@router.get("/insights", summary="Aggregate conversation chunks")
def get_conversation_insights(
    time_range: str = Query(default="all", alias="timeRange"),
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """Tone, conflict and topic aggregates over chunks in a time range.

    ``timeRange`` is one of 1month, 3months, 6months or all.
    """
    return conversation_insights(db, time_range)


@router.post("/insights", summary="Aggregate conversation chunks")
def post_conversation_insights(
    body: ConversationInsightsRequest,
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    return conversation_insights(db, body.time_range)
