"""Relationship coach: strategic guidance grounded in conversation history."""

from __future__ import annotations

import logging

from unmask.agents.base import (
    AgentRequest,
    AgentResponse,
    BaseAgent,
    Evidence,
    format_message_evidence,
    message_evidence,
)
from unmask.agents.registry import COACHING_AGENT
from unmask.intent import UserIntent
from unmask.prompts import COACHING_TEMPLATE, PromptTemplate, coaching_template
from unmask.sentiment import message_polarity

logger = logging.getLogger(__name__)

RECENT_SCAN_LIMIT = 200
HIGH_IMPACT_LIMIT = 10

_STRATEGIC_INTENTS = frozenset(
    {
        UserIntent.PATTERN_ANALYSIS,
        UserIntent.PREDICTIVE_GUIDANCE,
        UserIntent.COMMUNICATION_TRAINING,
    }
)

_INTERVENTION_BY_URGENCY = {"high": "immediate", "medium": "short_term", "low": "long_term"}

_REFLECTION_QUESTIONS = {
    "strategic": "Which of these moments keeps repeating, and what usually sets it off?",
    "supportive": "What did you need most in these moments, and did you ask for it?",
    "direct": "What is the one conversation you have been putting off?",
    "exploratory": "What feeling shows up for you when you reread these messages?",
}


def is_high_impact(polarity: float, conflict: bool) -> bool:
    return polarity < -0.5 or polarity > 0.7 or conflict


def coaching_style(request: AgentRequest) -> str:
    """Pick a coaching style from the classified urgency, emotion and intent."""
    intent = request.intent
    if intent is None:
        return "supportive"
    if intent.urgency == "high":
        return "direct"
    if intent.emotional_context in ("negative", "mixed"):
        return "supportive"
    if intent.intent in _STRATEGIC_INTENTS:
        return "strategic"
    return "exploratory"


class CoachingAgent(BaseAgent):
    """Answers "what should I do" questions with evidence-backed coaching."""

    agent_type = COACHING_AGENT
    template = COACHING_TEMPLATE
    default_next_steps = (
        "Reflect on the insights shared and identify one pattern to focus on",
        "Have an honest conversation with your partner about what you discovered",
        "Practice the recommended approach in your next interaction",
    )

    def prompt_template(self, request: AgentRequest) -> PromptTemplate:
        return coaching_template(coaching_style(request))

    def gather(self, request: AgentRequest) -> Evidence:
        items = []
        for match in self.semantic_matches(request.message):
            meta = match.metadata
            items.append(
                {
                    "id": match.vector_id,
                    "timestamp": meta.get("date"),
                    "sender": meta.get("sender") or "Unknown",
                    "content": str(meta.get("text") or "")[:300],
                    "sentiment": meta.get("sentiment") or "unknown",
                    "score": round(match.score, 3),
                }
            )

        high_impact = [
            message_evidence(m)
            for m in self.db.list_messages(limit=RECENT_SCAN_LIMIT)
            if is_high_impact(message_polarity(m), m.conflict_detected)
        ][:HIGH_IMPACT_LIMIT]
        items.extend(high_impact)

        style = coaching_style(request)
        return Evidence(
            title="Evidence From Your Conversations",
            lines=format_message_evidence(items),
            supporting_data=items,
            summary=self._summary(items, style),
            focus=f"Coach in a {style} style and end with concrete next steps.",
            related_insights=self.previous_insights(request.context, "coaching"),
        )

    def confidence(self, request: AgentRequest, evidence: Evidence) -> float:
        context = request.context
        confidence = 0.7
        if len(evidence.supporting_data) > 3:
            confidence += 0.1
        if context.current_health_score is not None:
            confidence += 0.05
        if context.relationship_start_date:
            confidence += 0.05
        if context.primary_concerns:
            confidence += 0.05
        return round(min(confidence, 0.95), 2)

    def respond(self, request: AgentRequest) -> AgentResponse:
        response = super().respond(request)
        response.coaching_style = coaching_style(request)
        urgency = request.intent.urgency if request.intent else "medium"
        response.intervention_type = _INTERVENTION_BY_URGENCY[urgency]
        return response

    def _summary(self, items: list[dict], style: str) -> str:
        if not items:
            return (
                "I don't have enough conversation history yet to ground specific advice. "
                "Import your messages and I can point to the moments that matter.\n\n"
                "In the meantime: what outcome are you hoping for in this situation? "
                "Naming it clearly is often the first step."
            )
        conflicts = sum(1 for item in items if item.get("conflict"))
        lines = [
            f"I looked at {len(items)} moments from your conversations that relate to this."
        ]
        if conflicts:
            lines.append(f"{conflicts} of them were flagged as conflict.")
        lines.append("")
        for item in items[:3]:
            lines.append(f'- {item["timestamp"]}, {item["sender"]}: "{item["content"][:160]}"')
        lines.extend(["", f"A question to sit with: {_REFLECTION_QUESTIONS[style]}"])
        return "\n".join(lines)


__all__ = ["CoachingAgent", "coaching_style", "is_high_impact"]
