"""Relationship historian: finds past conversations about a topic.

Vector search over stored conversation chunks comes first. When it finds
nothing (no vectors yet, or nothing close), the agent falls back to a
keyword search over raw message text.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from unmask.agents.base import (
    AgentRequest,
    BaseAgent,
    Evidence,
    format_message_evidence,
    message_evidence,
)
from unmask.agents.registry import MEMORY_AGENT
from unmask.db.messages import MessageFilters
from unmask.db.models import parse_timestamp
from unmask.db.vectors import VectorMatch
from unmask.prompts import MEMORY_TEMPLATE
from unmask.sentiment import sentiment_polarity
from unmask.vectorize import message_ids_from_matches

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
KEYWORD_LIMIT = 3

_WORD_RE = re.compile(r"[a-zA-Z']{4,}")
_STOPWORDS = frozenset(
    {
        "what",
        "when",
        "where",
        "which",
        "about",
        "did",
        "does",
        "have",
        "with",
        "that",
        "this",
        "from",
        "were",
        "was",
        "talk",
        "talked",
        "said",
        "say",
        "find",
        "show",
        "messages",
        "conversations",
        "conversation",
        "time",
        "times",
        "ever",
        "last",
        "partner",
    }
)


def search_confidence(matches: list[VectorMatch]) -> float:
    """Confidence in a vector search from match count and mean score."""
    if not matches:
        return 0.1
    avg_score = sum(m.score for m in matches) / len(matches)
    result_count = min(len(matches) / 10, 1.0)
    return round(min(0.95, avg_score * 0.6 + result_count * 0.3 + 0.1), 3)


def query_keywords(query: str, limit: int = KEYWORD_LIMIT) -> list[str]:
    """Longest distinctive words in a query, for the text-search fallback."""
    words = [w.lower().strip("'") for w in _WORD_RE.findall(query)]
    unique = list(dict.fromkeys(w for w in words if w not in _STOPWORDS))
    return sorted(unique, key=len, reverse=True)[:limit]


def search_insights(items: list[dict[str, Any]]) -> list[str]:
    """Short observations about a set of search results."""
    if not items:
        return ["No relevant conversations found for this topic"]
    insights = []
    polarities = [
        p for p in (sentiment_polarity(i.get("sentiment")) for i in items) if p is not None
    ]
    if polarities:
        avg = sum(polarities) / len(polarities)
        if avg > 0.3:
            insights.append("Generally positive conversations about this topic")
        elif avg < -0.3:
            insights.append("This topic tends to create tension in conversations")

    times = sorted(t for t in (parse_timestamp(i.get("timestamp")) for i in items) if t)
    if len(times) > 1:
        days = (times[-1] - times[0]).total_seconds() / 86400
        if days > 0:
            frequency = len(items) / days
            if frequency > 1:
                insights.append("This is a frequently discussed topic")
            elif frequency < 0.1:
                insights.append("This topic comes up occasionally in conversations")
    return insights[:3]


class MemoryAgent(BaseAgent):
    agent_type = MEMORY_AGENT
    template = MEMORY_TEMPLATE
    default_next_steps = (
        "Ask me about a specific month or event to dig deeper",
        "Compare how this topic came up early on versus recently",
        "Search for a related topic to see how they connect",
    )

    def gather(self, request: AgentRequest) -> Evidence:
        matches = self.semantic_matches(request.message, top_k=SEARCH_LIMIT)
        messages = self.db.get_messages_by_ids(message_ids_from_matches(matches))
        method = "semantic"
        if not matches:
            method = "keyword"
            messages = []
            for keyword in query_keywords(request.message):
                messages = self.db.list_messages(MessageFilters(search=keyword), limit=SEARCH_LIMIT)
                if messages:
                    break
            logger.debug("Keyword fallback found %d messages", len(messages))

        items = [message_evidence(m) for m in messages[:SEARCH_LIMIT]]
        if not items:
            items = [
                {
                    "id": m.vector_id,
                    "timestamp": m.metadata.get("date"),
                    "sender": m.metadata.get("sender") or "Unknown",
                    "content": str(m.metadata.get("text") or "")[:300],
                    "sentiment": m.metadata.get("sentiment") or "unknown",
                    "score": round(m.score, 3),
                }
                for m in matches
            ]

        if matches:
            confidence = search_confidence(matches)
        else:
            confidence = round(min(0.5, 0.1 + len(items) * 0.04), 2)

        return Evidence(
            title="Retrieved Conversations",
            lines=format_message_evidence(items),
            supporting_data=[{**item, "searchMethod": method} for item in items],
            summary=self._summary(items),
            focus="Answer from the retrieved conversations and cite dates.",
            related_insights=search_insights(items),
            confidence=confidence,
        )

    def _summary(self, items: list[dict[str, Any]]) -> str:
        if not items:
            return (
                "I couldn't find conversations about that in your history. "
                "Try different words, or ask about a specific time period."
            )
        lines = [f"I found {len(items)} related messages. The most relevant:", ""]
        lines.extend(
            f'- {item["timestamp"]}, {item["sender"]}: "{str(item["content"])[:200]}"'
            for item in items[:5]
        )
        return "\n".join(lines)


__all__ = ["MemoryAgent", "query_keywords", "search_confidence", "search_insights"]
