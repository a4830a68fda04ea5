"""Vectorization API endpoints.

``POST /vectorize/populate`` chunks one page of messages by time gap,
embeds each chunk and stores the vectors. Call it repeatedly with the next
offset while ``hasMore`` is true.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_database, get_llm
from api.ratelimit import limiter, llm_rate_limit
from api.schemas import PopulateRequest, VectorSearchRequest
from unmask import vectorize
from unmask.db import UnmaskDB
from unmask.errors import ErrorCode, VectorizeError
from unmask.llm import LLMClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vectorize", tags=["vectorize"])


@router.post("/populate", summary="Chunk and embed one page of messages")
@limiter.limit(llm_rate_limit)
def populate(
    request: Request,
    body: PopulateRequest | None = None,
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> dict[str, Any]:
    """Process ``batchSize`` messages starting at ``offset`` (oldest first).

    An offset past the last message is not an error: the response has
    ``success: false`` and ``hasMore: false`` so batch loops can stop.
    """
    body = body or PopulateRequest()
    try:
        result = vectorize.populate(db, llm, batch_size=body.batch_size, offset=body.offset)
    except VectorizeError as e:
        if e.code != ErrorCode.VEC_NO_MESSAGES:
            raise
        return {"success": False, "error": e.message, "hasMore": False}

    return {"success": True, "vectorized": result.to_dict()}


@router.get("/populate", summary="Vector index status")
def populate_status(db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    return vectorize.status(db)


@router.get("/check", summary="Probe the vector index")
def check(
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> dict[str, Any]:
    """Run a sample query against the index and summarize the message table."""
    return vectorize.check(db, llm)


@router.post("/search", summary="Semantic search over conversation chunks")
def search(
    body: VectorSearchRequest,
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> dict[str, Any]:
    matches = vectorize.search(db, llm, body.query, top_k=body.top_k)
    return {
        "success": True,
        "query": body.query,
        "matches": [m.to_dict() for m in matches],
        "messageIds": vectorize.message_ids_from_matches(matches),
    }
