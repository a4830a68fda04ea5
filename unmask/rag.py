"""Retrieval-augmented chat over stored conversation chunks.

The query is embedded, the closest chunks are retrieved from the vector
store, and the chat model answers with those chunks as context. Without an
OpenAI key the retrieved chunks are listed directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from unmask.observability import timed_operation
from unmask.prompts import build_rag_messages
from unmask.vectorize import search

if TYPE_CHECKING:
    from unmask.db import UnmaskDB
    from unmask.llm import LLMClient

logger = logging.getLogger(__name__)

TOP_K = 5
RAG_CONFIDENCE = 0.85
RAG_TEMPERATURE = 0.7
RAG_MAX_TOKENS = 1000

NO_SOURCES_RESPONSE = (
    "I couldn't find specific information related to your query in the relationship data. "
    "Could you try rephrasing your question or asking about something else?"
)
ERROR_RESPONSE = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again in a moment."
)
EMPTY_QUERY_RESPONSE = "I didn't receive your message. Could you please try again?"

RAG_NEXT_STEPS = [
    "Ask me to analyze specific time periods",
    "Request insights about communication patterns",
    "Get personalized relationship advice",
]
ERROR_NEXT_STEPS = [
    "Try rephrasing your question",
    "Ask a more specific question",
    "Check back in a few minutes",
]


@dataclass
class RagAnswer:
    """Answer plus the chunks it was grounded on."""

    response: str
    agent_type: str
    confidence: float
    next_steps: list[str] = field(default_factory=list)
    related_insights: list[str] = field(default_factory=list)
    sources: list[dict[str, Any]] = field(default_factory=list)
    coaching_style: str | None = "supportive"
    intervention_type: str | None = "exploratory"
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "response": self.response,
            "timestamp": self.timestamp,
            "agentType": self.agent_type,
            "confidence": self.confidence,
            "nextSteps": self.next_steps,
            "relatedInsights": self.related_insights,
            "sources": self.sources,
        }
        if self.coaching_style:
            data["coachingStyle"] = self.coaching_style
        if self.intervention_type:
            data["interventionType"] = self.intervention_type
        return data


def query_agent_type(query: str) -> str:
    lowered = query.lower()
    if any(word in lowered for word in ("advice", "should", "help")):
        return "coaching"
    if any(word in lowered for word in ("pattern", "analyze", "trend")):
        return "insights"
    return "memory"


def error_answer() -> RagAnswer:
    return RagAnswer(
        response=ERROR_RESPONSE,
        agent_type="error",
        confidence=0.1,
        next_steps=list(ERROR_NEXT_STEPS),
        coaching_style=None,
        intervention_type=None,
    )


def empty_query_answer() -> RagAnswer:
    return RagAnswer(
        response=EMPTY_QUERY_RESPONSE,
        agent_type="error",
        confidence=0.1,
        coaching_style=None,
        intervention_type=None,
    )


def answer(db: UnmaskDB, llm: LLMClient, query: str, top_k: int = TOP_K) -> RagAnswer:
    """Answer ``query`` from the closest stored conversation chunks.

    Raises:
        ValidationError: If the query is blank.
        LLMError: If embedding or completion fails.
    """
    with timed_operation(logger, "rag.answer", top_k=top_k) as ctx:
        matches = search(db, llm, query, top_k=top_k)
        sources = [
            {
                "id": m.vector_id,
                "score": round(m.score, 4),
                "text": str(m.metadata.get("text") or ""),
                "date": m.metadata.get("date"),
                "sender": m.metadata.get("sender"),
            }
            for m in matches
        ]
        ctx["sources"] = len(sources)

        if not sources:
            response = NO_SOURCES_RESPONSE
        elif llm.available:
            response = llm.complete(
                build_rag_messages([s["text"] for s in sources], query),
                temperature=RAG_TEMPERATURE,
                max_tokens=RAG_MAX_TOKENS,
            )
        else:
            listed = "\n\n".join(f"{i}. {s['text']}" for i, s in enumerate(sources, start=1))
            response = (
                f"Based on your relationship data, here are some relevant insights:\n\n{listed}"
                "\n\nThese patterns suggest areas you might want to explore further in your "
                "relationship."
            )

    return RagAnswer(
        response=response,
        agent_type=query_agent_type(query),
        confidence=RAG_CONFIDENCE,
        next_steps=list(RAG_NEXT_STEPS),
        related_insights=[f"{s['text'][:100]}..." for s in sources[:3]],
        sources=sources,
    )


def configuration(db: UnmaskDB, llm: LLMClient) -> dict[str, Any]:
    """Whether retrieval and completion are usable."""
    return {
        "success": True,
        "configured": {
            "vectorize": db.count_vectors() > 0,
            "openai": llm.available,
        },
    }


__all__ = [
    "RagAnswer",
    "answer",
    "configuration",
    "empty_query_answer",
    "error_answer",
    "query_agent_type",
]
