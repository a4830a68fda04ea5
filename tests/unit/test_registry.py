"""Tests for unmask/agents/registry.py - capabilities and intent routing."""

import pytest

from unmask.agents.registry import (
    AGENT_REGISTRY,
    ROUTING_MAP,
    confidence_label,
    format_agent_response,
    get_capabilities,
    route_for_intent,
)
from unmask.errors import AgentError, ErrorCode
from unmask.intent import UserIntent


class TestRoutingMap:
    def test_every_intent_routed(self):
        assert set(ROUTING_MAP) == set(UserIntent)

    def test_routes_point_at_registered_agents(self):
        for route in ROUTING_MAP.values():
            assert route.primary_agent in AGENT_REGISTRY
            assert all(agent in AGENT_REGISTRY for agent in route.secondary_agents)

    @pytest.mark.parametrize(
        "intent,agent",
        [
            (UserIntent.IMMEDIATE_COACHING, "coaching-agent"),
            (UserIntent.PATTERN_ANALYSIS, "pattern-agent"),
            (UserIntent.CONFLICT_ANALYSIS, "conflict-agent"),
            (UserIntent.EMOTIONAL_CHECK, "emotional-agent"),
            (UserIntent.HISTORICAL_INSIGHT, "memory-agent"),
            (UserIntent.DATA_QUERY, "memory-agent"),
            (UserIntent.RELATIONSHIP_HEALTH, "emotional-agent"),
            (UserIntent.COMMUNICATION_TRAINING, "coaching-agent"),
        ],
    )
    def test_route_for_intent(self, intent, agent):
        assert route_for_intent(intent).primary_agent == agent

    def test_route_to_dict(self):
        assert route_for_intent(UserIntent.CONFLICT_ANALYSIS).to_dict() == {
            "primaryAgent": "conflict-agent",
            "secondaryAgents": ["pattern-agent", "coaching-agent"],
            "confidence": 0.95,
            "reasoning": "Specialized conflict analysis and resolution needed",
        }


class TestCapabilities:
    def test_lookup(self):
        info = get_capabilities("memory-agent")
        assert info.name == "Relationship Historian"
        assert info.to_dict()["maxContextLength"] == 10000

    def test_unknown_agent(self):
        with pytest.raises(AgentError) as exc_info:
            get_capabilities("astrology-agent")
        assert exc_info.value.code == ErrorCode.AGT_UNKNOWN


class TestFormatting:
    @pytest.mark.parametrize(
        "confidence,label",
        [(0.95, "High confidence"), (0.75, "Moderate confidence"), (0.4, "Initial assessment")],
    )
    def test_confidence_label(self, confidence, label):
        assert confidence_label(confidence) == label

    def test_format_agent_response(self):
        assert format_agent_response("Talk it out.", "conflict-agent", 0.9) == (
            "**Conflict Specialist** (High confidence)\n\nTalk it out."
        )

    def test_unknown_agent_name(self):
        assert format_agent_response("Hi", "nobody", 0.5).startswith("**AI Coach**")
