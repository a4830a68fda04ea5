"""Conflict specialist: how fights start, escalate and get repaired."""

from __future__ import annotations

from collections import Counter

from unmask.agents.base import (
    AgentRequest,
    BaseAgent,
    Evidence,
    format_message_evidence,
    message_evidence,
)
from unmask.agents.registry import CONFLICT_AGENT
from unmask.db.messages import MessageFilters
from unmask.insights import detect_patterns, recent_messages
from unmask.prompts import CONFLICT_TEMPLATE

CONFLICT_MESSAGE_LIMIT = 20
CONFLICT_WINDOW_DAYS = 90


def busiest_hour(items: list[dict]) -> str | None:
    """Most common hour ("21:00") among evidence timestamps."""
    hours = Counter(
        str(item["timestamp"])[11:13]
        for item in items
        if item.get("timestamp") and len(str(item["timestamp"])) >= 13
    )
    if not hours:
        return None
    hour, _ = hours.most_common(1)[0]
    return f"{hour}:00"


class ConflictAgent(BaseAgent):
    agent_type = CONFLICT_AGENT
    template = CONFLICT_TEMPLATE
    default_next_steps = (
        "Agree on a pause signal either of you can use when a conversation heats up",
        "Revisit the most recent disagreement once you are both calm",
        "Name the need underneath the argument rather than the complaint",
    )

    def gather(self, request: AgentRequest) -> Evidence:
        flagged = self.db.list_messages(
            MessageFilters(conflict="conflicts"), limit=CONFLICT_MESSAGE_LIMIT
        )
        items = [message_evidence(m) for m in flagged]

        cycles = [
            p
            for p in detect_patterns(recent_messages(self.db, CONFLICT_WINDOW_DAYS))
            if p.type == "conflict_cycle"
        ]
        related = [
            {
                "id": match.vector_id,
                "timestamp": match.metadata.get("date"),
                "sender": match.metadata.get("sender") or "Unknown",
                "content": str(match.metadata.get("text") or "")[:300],
                "sentiment": match.metadata.get("sentiment") or "unknown",
                "score": round(match.score, 3),
            }
            for match in self.semantic_matches(request.message, top_k=3)
        ]

        lines = format_message_evidence(items + related)
        lines.extend(f"{p.title}: {p.description}" for p in cycles)
        supporting = items + related + [p.to_dict() for p in cycles]

        return Evidence(
            title="Conflict Evidence",
            lines=lines,
            supporting_data=supporting,
            summary=self._summary(items, cycles),
            focus="Identify triggers and escalation, then suggest a concrete repair strategy.",
            related_insights=self.previous_insights(request.context, "conflict"),
        )

    def confidence(self, request: AgentRequest, evidence: Evidence) -> float:
        flagged = sum(1 for item in evidence.supporting_data if item.get("conflict"))
        if flagged >= 3:
            return self.capabilities.confidence_threshold
        if flagged:
            return 0.7
        return 0.5

    def _summary(self, items: list[dict], cycles: list) -> str:
        if not items:
            return (
                "I didn't find any messages flagged as conflict in your history. "
                "If something specific is bothering you, tell me when it happened "
                "and I can look at that conversation."
            )
        senders = Counter(item["sender"] for item in items)
        lines = [f"I found {len(items)} recent messages flagged as conflict."]
        hour = busiest_hour(items)
        if hour:
            lines.append(f"Most of them happened around {hour}.")
        if len(senders) > 1:
            breakdown = ", ".join(f"{name} ({count})" for name, count in senders.most_common())
            lines.append(f"Both of you were part of them: {breakdown}.")
        for cycle in cycles:
            lines.append(f"{cycle.description}.")
        latest = items[0]
        lines.extend(
            [
                "",
                f'The most recent one ({latest["timestamp"]}): "{latest["content"][:160]}"',
                "",
                "What was each of you needing in that moment that the other didn't hear?",
            ]
        )
        return "\n".join(lines)


__all__ = ["ConflictAgent", "busiest_hour"]
