"""Chat API endpoints.

``POST /chat`` routes a message through the intent classifier to one of the
specialist agents. ``/chat/rag`` answers directly from the closest stored
conversation chunks.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_agent_orchestrator, get_database, get_llm
from api.ratelimit import limiter, llm_rate_limit
from api.schemas import ChatRequest, ChatResponse, RagRequest
from unmask import rag
from unmask.agents import Orchestrator
from unmask.config import get_config
from unmask.db import UnmaskDB
from unmask.errors import UnmaskError
from unmask.llm import LLMClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

CHAT_ERROR_BODY: dict[str, Any] = {
    "error": "Failed to process message",
    "response": (
        "I'm having trouble processing your request right now. "
        "Could you try rephrasing your question?"
    ),
    "agentType": "error-fallback",
    "confidence": 0.1,
}


@router.post(
    "",
    response_model=ChatResponse,
    summary="Ask the relationship agents",
    responses={
        400: {"description": "Message is missing or blank"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "The orchestrator failed; body carries a fallback answer"},
    },
)
@limiter.limit(llm_rate_limit)
def chat(
    request: Request,
    body: ChatRequest,
    orchestrator: Orchestrator = Depends(get_agent_orchestrator),
) -> Any:
    """Classify the message, run the routed agent and return its answer.

    The interaction is stored in the user's history, so follow-up
    questions can build on earlier answers.
    """
    if not body.message.strip():
        return JSONResponse(status_code=400, content={"error": "Message is required"})

    user_id = body.user_id or get_config().orchestrator.default_user_id
    history = [turn.model_dump() for turn in body.conversation_history]
    try:
        result = orchestrator.process(user_id, body.message, history or None)
    except Exception:
        logger.exception("Chat request failed for user %s", user_id)
        return JSONResponse(status_code=500, content=CHAT_ERROR_BODY)

    return ChatResponse(
        response=result.response,
        agentType=result.agent_type,
        confidence=result.confidence,
        nextSteps=result.next_steps,
        relatedInsights=result.related_insights,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.post("/rag", summary="Answer from retrieved conversation chunks")
@limiter.limit(llm_rate_limit)
def chat_rag(
    request: Request,
    body: RagRequest,
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> dict[str, Any]:
    """Retrieval-augmented answer.

    Errors never surface as HTTP failures: a blank message or a failed
    lookup both come back as an ``agentType: "error"`` answer.
    """
    query = (body.message or body.query or "").strip()
    if not query:
        return rag.empty_query_answer().to_dict()

    try:
        return rag.answer(db, llm, query, top_k=body.top_k).to_dict()
    except UnmaskError as e:
        logger.error("RAG error: %s", e)
        return rag.error_answer().to_dict()


@router.get("/rag", summary="Check RAG configuration")
def rag_configuration(
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> dict[str, Any]:
    """Whether stored vectors and an OpenAI key are available."""
    return rag.configuration(db, llm)
