"""Pattern analyst: communication trends and emotional seasons."""

from __future__ import annotations

from unmask.agents.base import AgentRequest, BaseAgent, Evidence
from unmask.agents.registry import PATTERN_AGENT
from unmask.insights import (
    detect_emotional_seasons,
    detect_patterns,
    format_insight_for_user,
    recent_messages,
)
from unmask.prompts import PATTERN_TEMPLATE

PATTERN_WINDOW_DAYS = 90
SEASON_WINDOW_DAYS = 365


class PatternAgent(BaseAgent):
    agent_type = PATTERN_AGENT
    template = PATTERN_TEMPLATE
    default_next_steps = (
        "Notice when this pattern shows up over the next week",
        "Compare a good week and a hard week side by side",
        "Share one observation with your partner without assigning blame",
    )

    def gather(self, request: AgentRequest) -> Evidence:
        patterns = detect_patterns(recent_messages(self.db, PATTERN_WINDOW_DAYS))
        seasons = detect_emotional_seasons(recent_messages(self.db, SEASON_WINDOW_DAYS))

        lines = [f"{p.title}: {p.description} (trend: {p.trend})" for p in patterns]
        lines.extend(
            f"Season {s['period']}: {s['theme']} (avg sentiment {s['avgSentiment']})"
            + (f", key events: {', '.join(s['keyEvents'])}" if s["keyEvents"] else "")
            for s in seasons
        )
        supporting = [p.to_dict() for p in patterns]
        supporting.extend({"type": "emotional_season", **s} for s in seasons)

        if patterns:
            summary = "\n\n".join(
                format_insight_for_user(
                    f"**{p.title}**: {p.description}.", p.supporting_data, p.confidence
                )
                for p in patterns
            )
        else:
            summary = (
                "There isn't enough recent history to detect a reliable pattern yet. "
                "Patterns need at least a week of daily conversation."
            )
        if seasons:
            latest = seasons[-1]
            summary += (
                f"\n\nYour most recent month ({latest['period']}) reads as a "
                f"{latest['theme']}."
            )

        return Evidence(
            title="Detected Patterns",
            lines=lines,
            supporting_data=supporting,
            summary=summary,
            focus="Explain what the trends mean for the relationship and what drives them.",
            related_insights=self.previous_insights(request.context, "pattern"),
        )

    def confidence(self, request: AgentRequest, evidence: Evidence) -> float:
        scores = [
            item["confidence"] for item in evidence.supporting_data if "confidence" in item
        ]
        if not scores:
            return 0.5
        return round(min(0.95, sum(scores) / len(scores)), 2)


__all__ = ["PatternAgent"]
