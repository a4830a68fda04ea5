"""Agent capabilities and the intent routing table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from unmask.errors import AgentError, ErrorCode
from unmask.intent import UserIntent

COACHING_AGENT = "coaching-agent"
PATTERN_AGENT = "pattern-agent"
CONFLICT_AGENT = "conflict-agent"
EMOTIONAL_AGENT = "emotional-agent"
MEMORY_AGENT = "memory-agent"


@dataclass(frozen=True)
class AgentCapabilities:
    """Static description of one agent."""

    name: str
    description: str
    specialties: tuple[str, ...]
    confidence_threshold: float
    max_context_length: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "specialties": list(self.specialties),
            "confidenceThreshold": self.confidence_threshold,
            "maxContextLength": self.max_context_length,
        }


@dataclass(frozen=True)
class AgentRoute:
    """Which agent handles an intent, and how sure the router is."""

    primary_agent: str
    secondary_agents: tuple[str, ...] = field(default_factory=tuple)
    confidence: float = 0.7
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "primaryAgent": self.primary_agent,
            "secondaryAgents": list(self.secondary_agents),
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


AGENT_REGISTRY: dict[str, AgentCapabilities] = {
    COACHING_AGENT: AgentCapabilities(
        name="Relationship Coach",
        description="Provides strategic relationship guidance and actionable advice",
        specialties=("immediate_guidance", "communication_coaching", "strategic_planning"),
        confidence_threshold=0.7,
        max_context_length=4000,
    ),
    PATTERN_AGENT: AgentCapabilities(
        name="Pattern Analyst",
        description="Identifies trends and patterns in relationship dynamics",
        specialties=("trend_analysis", "communication_evolution", "behavioral_patterns"),
        confidence_threshold=0.8,
        max_context_length=8000,
    ),
    CONFLICT_AGENT: AgentCapabilities(
        name="Conflict Specialist",
        description="Analyzes and provides resolution strategies for relationship conflicts",
        specialties=("conflict_analysis", "escalation_detection", "resolution_strategies"),
        confidence_threshold=0.85,
        max_context_length=6000,
    ),
    EMOTIONAL_AGENT: AgentCapabilities(
        name="Emotional Intelligence Specialist",
        description="Tracks emotional health and provides attachment-focused insights",
        specialties=("sentiment_analysis", "attachment_coaching", "emotional_health"),
        confidence_threshold=0.75,
        max_context_length=5000,
    ),
    MEMORY_AGENT: AgentCapabilities(
        name="Relationship Historian",
        description="Retrieves and contextualizes relationship history and data",
        specialties=("data_retrieval", "historical_context", "timeline_analysis"),
        confidence_threshold=0.9,
        max_context_length=10000,
    ),
}

ROUTING_MAP: dict[UserIntent, AgentRoute] = {
    UserIntent.IMMEDIATE_COACHING: AgentRoute(
        COACHING_AGENT,
        (EMOTIONAL_AGENT,),
        0.95,
        "User needs immediate relationship guidance",
    ),
    UserIntent.PATTERN_ANALYSIS: AgentRoute(
        PATTERN_AGENT,
        (MEMORY_AGENT, EMOTIONAL_AGENT),
        0.9,
        "Analyzing communication and behavioral patterns",
    ),
    UserIntent.CONFLICT_ANALYSIS: AgentRoute(
        CONFLICT_AGENT,
        (PATTERN_AGENT, COACHING_AGENT),
        0.95,
        "Specialized conflict analysis and resolution needed",
    ),
    UserIntent.EMOTIONAL_CHECK: AgentRoute(
        EMOTIONAL_AGENT,
        (PATTERN_AGENT,),
        0.85,
        "Emotional intelligence and sentiment analysis",
    ),
    UserIntent.HISTORICAL_INSIGHT: AgentRoute(
        MEMORY_AGENT,
        (PATTERN_AGENT,),
        0.9,
        "Retrieving and analyzing historical data",
    ),
    UserIntent.PREDICTIVE_GUIDANCE: AgentRoute(
        COACHING_AGENT,
        (PATTERN_AGENT, EMOTIONAL_AGENT),
        0.8,
        "Forward-looking strategic relationship guidance",
    ),
    UserIntent.DATA_QUERY: AgentRoute(
        MEMORY_AGENT,
        (),
        0.95,
        "Direct data retrieval and search",
    ),
    UserIntent.RELATIONSHIP_HEALTH: AgentRoute(
        EMOTIONAL_AGENT,
        (PATTERN_AGENT,),
        0.9,
        "Health metrics and relationship scoring",
    ),
    UserIntent.ATTACHMENT_COACHING: AgentRoute(
        EMOTIONAL_AGENT,
        (COACHING_AGENT,),
        0.85,
        "Attachment style analysis and emotional coaching",
    ),
    UserIntent.COMMUNICATION_TRAINING: AgentRoute(
        COACHING_AGENT,
        (PATTERN_AGENT,),
        0.9,
        "Communication skill development and training",
    ),
}

FALLBACK_ROUTE = AgentRoute(COACHING_AGENT, (), 0.7, "Fallback execution")


def route_for_intent(intent: UserIntent) -> AgentRoute:
    """Look up the route for an intent, defaulting to the coaching agent."""
    return ROUTING_MAP.get(intent, ROUTING_MAP[UserIntent.IMMEDIATE_COACHING])


def get_capabilities(agent_type: str) -> AgentCapabilities:
    """Return registry info for an agent.

    Raises:
        AgentError: If the agent type is not registered.
    """
    try:
        return AGENT_REGISTRY[agent_type]
    except KeyError:
        raise AgentError(
            f"Unknown agent type: {agent_type}",
            agent_type=agent_type,
            code=ErrorCode.AGT_UNKNOWN,
        ) from None


def confidence_label(confidence: float) -> str:
    if confidence >= 0.9:
        return "High confidence"
    if confidence >= 0.7:
        return "Moderate confidence"
    return "Initial assessment"


def format_agent_response(response: str, agent_type: str, confidence: float) -> str:
    """Prefix a response with the agent's display name and a confidence label."""
    info = AGENT_REGISTRY.get(agent_type)
    name = info.name if info else "AI Coach"
    return f"**{name}** ({confidence_label(confidence)})\n\n{response}"


__all__ = [
    "AGENT_REGISTRY",
    "AgentCapabilities",
    "AgentRoute",
    "COACHING_AGENT",
    "CONFLICT_AGENT",
    "EMOTIONAL_AGENT",
    "FALLBACK_ROUTE",
    "MEMORY_AGENT",
    "PATTERN_AGENT",
    "ROUTING_MAP",
    "confidence_label",
    "format_agent_response",
    "get_capabilities",
    "route_for_intent",
]
