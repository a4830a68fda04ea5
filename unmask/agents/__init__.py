"""Specialist agents and the orchestrator that routes chat messages to them."""

from unmask.agents.base import AgentRequest, AgentResponse, BaseAgent, Evidence
from unmask.agents.orchestrator import (
    Orchestrator,
    fallback_response,
    get_orchestrator,
    reset_orchestrator,
)
from unmask.agents.registry import (
    AGENT_REGISTRY,
    ROUTING_MAP,
    AgentCapabilities,
    AgentRoute,
    format_agent_response,
    route_for_intent,
)

__all__ = [
    "AGENT_REGISTRY",
    "AgentCapabilities",
    "AgentRequest",
    "AgentResponse",
    "AgentRoute",
    "BaseAgent",
    "Evidence",
    "Orchestrator",
    "ROUTING_MAP",
    "fallback_response",
    "format_agent_response",
    "get_orchestrator",
    "reset_orchestrator",
    "route_for_intent",
]
