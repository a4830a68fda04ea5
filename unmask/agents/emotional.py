"""Emotional intelligence specialist: health score, seasons and attachment."""

from __future__ import annotations

from typing import Any

from unmask.agents.base import AgentRequest, BaseAgent, Evidence
from unmask.agents.registry import EMOTIONAL_AGENT
from unmask.insights import detect_emotional_seasons, health_assessment, recent_messages
from unmask.prompts import EMOTIONAL_TEMPLATE

SEASON_WINDOW_DAYS = 365

_ATTACHMENT_NOTES = {
    "anxious": "With an anxious attachment style, slow replies can feel like distance. "
    "Naming that feeling directly usually works better than waiting it out.",
    "avoidant": "With an avoidant attachment style, closeness can feel like pressure. "
    "Short, regular check-ins are easier to sustain than big talks.",
    "secure": "A secure attachment style is a strong base for working through hard moments "
    "together.",
}


class EmotionalAgent(BaseAgent):
    agent_type = EMOTIONAL_AGENT
    template = EMOTIONAL_TEMPLATE
    default_next_steps = (
        "Check in with yourself about how you have felt in the relationship this week",
        "Tell your partner about one moment you felt close to them recently",
        "Pick the lowest area of your health breakdown and try one small change",
    )

    def gather(self, request: AgentRequest) -> Evidence:
        health = health_assessment(self.db, user_id=request.context.user_id)
        seasons = detect_emotional_seasons(recent_messages(self.db, SEASON_WINDOW_DAYS))
        has_data = health["metrics"]["communication_frequency"] > 0

        lines = [
            f"Health score: {health['currentScore']}/10 (trend: {health['trend']})",
            "Breakdown: "
            + ", ".join(f"{key} {value}/10" for key, value in health["breakdown"].items()),
        ]
        lines.extend(f"Season {s['period']}: {s['theme']}" for s in seasons[-6:])
        supporting: list[dict[str, Any]] = []
        if has_data:
            supporting.append({"type": "health_score", **health})
            supporting.extend({"type": "emotional_season", **s} for s in seasons)

        return Evidence(
            title="Emotional Health Data",
            lines=lines if has_data else [],
            supporting_data=supporting,
            summary=self._summary(request, health, seasons, has_data),
            focus="Interpret the score and the emotional seasons with attachment in mind.",
            related_insights=self.previous_insights(request.context, "emotional"),
        )

    def confidence(self, request: AgentRequest, evidence: Evidence) -> float:
        if not evidence.supporting_data:
            return 0.5
        confidence = self.capabilities.confidence_threshold
        if len(evidence.supporting_data) > 3:
            confidence += 0.1
        if request.context.attachment_style:
            confidence += 0.05
        return round(min(confidence, 0.95), 2)

    def _summary(
        self,
        request: AgentRequest,
        health: dict[str, Any],
        seasons: list[dict[str, Any]],
        has_data: bool,
    ) -> str:
        if not has_data:
            return (
                "I don't have recent messages to assess your emotional health yet. "
                "Once your conversations are imported I can score how connected, "
                "responsive and calm things have been."
            )
        breakdown = health["breakdown"]
        strongest = max(breakdown, key=breakdown.get)
        weakest = min(breakdown, key=breakdown.get)
        lines = [
            f"Your relationship health score is {health['currentScore']}/10 "
            f"and the trend is {health['trend']}.",
            f"Your strongest area is {strongest}; the one needing the most care is {weakest}.",
        ]
        if seasons:
            latest = seasons[-1]
            lines.append(f"Emotionally, {latest['period']} reads as a {latest['theme']}.")
        style = (request.context.attachment_style or "").lower()
        note = next((text for key, text in _ATTACHMENT_NOTES.items() if key in style), None)
        if note:
            lines.append(note)
        lines.extend(["", *health["recommendations"][:2]])
        return "\n".join(lines)


__all__ = ["EmotionalAgent"]
