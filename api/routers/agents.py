"""Agent API endpoints: intent classification and the agent registry."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_agent_orchestrator
from api.ratelimit import limiter, llm_rate_limit
from api.schemas import ClassifyRequest
from unmask.agents import AGENT_REGISTRY, Orchestrator, route_for_intent
from unmask.agents.registry import get_capabilities
from unmask.intent import UserContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["agents"])


@router.post("/classify", summary="Classify a chat message's intent")
@limiter.limit(llm_rate_limit)
def classify(
    request: Request,
    body: ClassifyRequest,
    orchestrator: Orchestrator = Depends(get_agent_orchestrator),
) -> dict[str, Any]:
    """Run the intent classifier without executing an agent.

    The user context comes from the request body when given, otherwise from
    the stored profile for ``userId``.
    """
    if body.context:
        context = UserContext.from_dict({**body.context, "userId": body.user_id})
    elif body.user_id:
        context = orchestrator.load_user_context(body.user_id)
    else:
        context = UserContext()

    history = [turn.model_dump() for turn in body.conversation_history]
    result = orchestrator.classify(body.message, context, history)
    route = route_for_intent(result.intent)
    return {
        "success": True,
        "classification": {**result.to_dict(), "method": result.method},
        "route": route.to_dict(),
        "agent": get_capabilities(route.primary_agent).to_dict(),
    }


@router.get("/registry", summary="List the specialist agents")
def registry() -> dict[str, Any]:
    return {
        "success": True,
        "agents": {agent_type: info.to_dict() for agent_type, info in AGENT_REGISTRY.items()},
    }
