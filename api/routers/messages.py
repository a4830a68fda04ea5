"""Messages API endpoints.

Provides paginated listing with filters, text and semantic search, and
single-message edits.
"""

import logging
import math
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_database, get_llm
from api.schemas import MessageUpdateRequest
from unmask.db import MessageFilters, UnmaskDB
from unmask.errors import LLMError, VectorizeError, missing_field_error, record_not_found
from unmask.llm import LLMClient
from unmask.vectorize import message_ids_from_matches, search

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def _pagination(page: int, limit: int, total: int) -> dict[str, Any]:
    offset = (page - 1) * limit
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "hasNext": offset + limit < total,
        "hasPrev": page > 1,
    }


def _semantic_messages(
    db: UnmaskDB, llm: LLMClient, query: str, limit: int
) -> tuple[list[dict[str, Any]], int, str]:
    """Vector search for messages, falling back to a LIKE search on the message text."""
    try:
        matches = search(db, llm, query, top_k=limit)
        ids = message_ids_from_matches(matches)
        if ids:
            found = db.get_messages_by_ids(ids)[:limit]
            return [m.to_dict() for m in found], len(found), "vector"
    except (LLMError, VectorizeError) as e:
        logger.warning("Vector search failed, falling back to text search: %s", e)

    filters = MessageFilters(search=query)
    found = db.list_messages(filters, limit=limit)
    return [m.to_dict() for m in found], db.count_messages(filters), "text-fallback"


@router.get("", summary="List messages")
def list_messages(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    search_text: str = Query(default="", alias="search"),
    semantic: str = Query(default="", description="Free-text query for vector search"),
    sender: str | None = Query(default=None),
    category: str | None = Query(default=None),
    tag: str | None = Query(default=None),
    sentiment: str | None = Query(default=None),
    year: int | None = Query(default=None, ge=1970, le=2100),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    conflict_filter: str | None = Query(
        default=None, alias="conflictFilter", pattern="^(all|conflicts|peaceful)$"
    ),
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> dict[str, Any]:
    """List messages newest first.

    ``semantic`` runs a vector search over conversation chunks and returns
    the messages they contain; ``search`` matches message text or sender.
    The remaining parameters are exact-match filters.
    """
    if semantic:
        messages, total, search_type = _semantic_messages(db, llm, semantic, limit)
    else:
        filters = MessageFilters(
            search=search_text or None,
            sender=sender,
            category=category,
            tag=tag,
            sentiment=sentiment,
            year=year,
            start_date=start_date,
            end_date=end_date,
            conflict=conflict_filter if conflict_filter != "all" else None,
        )
        total = db.count_messages(filters)
        rows = db.list_messages(filters, limit=limit, offset=(page - 1) * limit)
        messages = [m.to_dict() for m in rows]
        search_type = "text" if search_text else "all"

    return {
        "messages": messages,
        "pagination": _pagination(page, limit, total),
        "filters": {
            "search": search_text,
            "semanticSearch": semantic,
            "sender": sender,
            "category": category,
            "tag": tag,
            "sentiment": sentiment,
            "year": year,
            "startDate": start_date,
            "endDate": end_date,
            "conflictFilter": conflict_filter or "all",
        },
        "metadata": {
            "searchType": search_type,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    }


@router.patch("/update", summary="Update one message")
def update_message(
    body: MessageUpdateRequest,
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """Update whitelisted fields of one message and return the stored row.

    Updatable fields: conflict_detected, sentiment_score, sentiment,
    category, tag, notes.
    """
    if body.message_id is None:
        raise missing_field_error("messageId")
    db.update_message(body.message_id, body.updates)
    updated = db.get_message(body.message_id)
    if updated is None:
        raise record_not_found("messages", body.message_id)
    logger.info("Updated message %d: %s", body.message_id, ", ".join(sorted(body.updates)))
    return {"success": True, "message": updated.to_dict()}


@router.delete("/{message_id}", summary="Delete one message")
def delete_message(message_id: int, db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    db.delete_message(message_id)
    logger.info("Deleted message %d", message_id)
    return {"success": True, "message": "Message deleted successfully", "id": message_id}

