"""Base class and request/response types for the specialist agents.

Every agent follows the same flow:

1. ``gather`` pulls evidence for the question out of the database
   (vector matches, flagged messages, reports) into an :class:`Evidence`.
2. With a configured OpenAI key, the evidence and user context fill the
   agent's prompt template and the chat model writes the answer.
3. Without a key, the agent answers with ``Evidence.summary``, a
   deterministic summary of the same data.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from unmask.agents.registry import AgentCapabilities, AgentRoute, get_capabilities
from unmask.db.models import Message
from unmask.db.vectors import VectorMatch
from unmask.errors import LLMError, VectorizeError
from unmask.intent import IntentClassificationResult, UserContext
from unmask.observability import timed_operation
from unmask.prompts import PromptTemplate, format_user_context, truncate_context
from unmask.sentiment import message_polarity
from unmask.vectorize import search

if TYPE_CHECKING:
    from unmask.db import UnmaskDB
    from unmask.llm import LLMClient

logger = logging.getLogger(__name__)

MAX_NEXT_STEPS = 3

_NEXT_STEPS_HEADING = re.compile(r"next step", re.IGNORECASE)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.*\S)")


@dataclass
class AgentRequest:
    """Input handed to an agent by the orchestrator."""

    message: str
    context: UserContext = field(default_factory=UserContext)
    intent: IntentClassificationResult | None = None
    route: AgentRoute | None = None


@dataclass
class AgentResponse:
    """An agent's answer.

    Attributes:
        agent_type: Registry key of the agent that answered.
        response: Answer text.
        confidence: 0-1 confidence in the answer.
        supporting_data: Evidence records the answer is grounded on.
        next_steps: Suggested actions for the user.
        related_insights: Short excerpts of related earlier findings.
    """

    agent_type: str
    response: str
    confidence: float
    supporting_data: list[dict[str, Any]] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    related_insights: list[str] = field(default_factory=list)
    coaching_style: str | None = None
    intervention_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "agentType": self.agent_type,
            "response": self.response,
            "confidence": self.confidence,
            "supportingData": self.supporting_data,
            "nextSteps": self.next_steps,
            "relatedInsights": self.related_insights,
        }
        if self.coaching_style:
            data["coachingStyle"] = self.coaching_style
        if self.intervention_type:
            data["interventionType"] = self.intervention_type
        return data


@dataclass
class Evidence:
    """Data an agent gathered for one question."""

    title: str
    lines: list[str] = field(default_factory=list)
    supporting_data: list[dict[str, Any]] = field(default_factory=list)
    summary: str = ""
    focus: str = ""
    related_insights: list[str] = field(default_factory=list)
    confidence: float | None = None

    @property
    def text(self) -> str:
        return "\n".join(self.lines) or "No matching data found."


def extract_next_steps(text: str, limit: int = MAX_NEXT_STEPS) -> list[str]:
    """Pull bullet items that follow a "Next Steps" heading in a model answer."""
    steps: list[str] = []
    in_section = False
    for line in text.splitlines():
        if _NEXT_STEPS_HEADING.search(line):
            in_section = True
            continue
        if not in_section:
            continue
        match = _BULLET.match(line)
        if match:
            steps.append(match.group(1).strip("* "))
            if len(steps) >= limit:
                break
        elif steps and line.strip():
            break
    return steps


def message_evidence(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "timestamp": message.date_time,
        "sender": message.sender or "Unknown",
        "content": message.message,
        "sentiment": message.sentiment or "unknown",
        "polarity": message_polarity(message),
        "conflict": message.conflict_detected,
    }


def format_message_evidence(items: list[dict[str, Any]]) -> list[str]:
    return [
        f'Evidence {i} ({item["timestamp"]}): "{item["content"]}" '
        f'({item["sender"]}, {item["sentiment"]})'
        for i, item in enumerate(items, start=1)
    ]


class BaseAgent(ABC):
    """Abstract base class for specialist agents."""

    agent_type: str = ""
    template: PromptTemplate
    default_next_steps: tuple[str, ...] = ()

    def __init__(self, db: UnmaskDB, llm: LLMClient) -> None:
        self.db = db
        self.llm = llm

    @property
    def capabilities(self) -> AgentCapabilities:
        return get_capabilities(self.agent_type)

    @abstractmethod
    def gather(self, request: AgentRequest) -> Evidence:
        """Collect the stored data this agent reasons over."""

    def confidence(self, request: AgentRequest, evidence: Evidence) -> float:
        """Confidence in an answer built from ``evidence``."""
        if evidence.confidence is not None:
            return evidence.confidence
        base = self.capabilities.confidence_threshold
        return base if evidence.supporting_data else round(base * 0.7, 2)

    def respond(self, request: AgentRequest) -> AgentResponse:
        """Answer a request.

        Raises:
            LLMError: If a configured model call fails.
            DatabaseError: If reading evidence fails.
        """
        with timed_operation(logger, "agent.respond", agent=self.agent_type) as ctx:
            evidence = self.gather(request)
            ctx["evidence"] = len(evidence.supporting_data)
            next_steps: list[str] = []
            text = ""
            if self.llm.available:
                text = self._complete(request, evidence)
                next_steps = extract_next_steps(text)
            if not text.strip():
                text = evidence.summary
            ctx["used_llm"] = self.llm.available

        return AgentResponse(
            agent_type=self.agent_type,
            response=text,
            confidence=self.confidence(request, evidence),
            supporting_data=evidence.supporting_data,
            next_steps=next_steps or list(self.default_next_steps),
            related_insights=evidence.related_insights,
        )

    def prompt_template(self, request: AgentRequest) -> PromptTemplate:
        return self.template

    def _complete(self, request: AgentRequest, evidence: Evidence) -> str:
        template = self.prompt_template(request)
        messages = template.messages(
            message=request.message,
            context=format_user_context(request.context),
            evidence_title=evidence.title,
            evidence=truncate_context(evidence.text, self.capabilities.max_context_length),
            focus=evidence.focus or "Answer the question directly.",
        )
        return self.llm.complete(
            messages,
            temperature=template.temperature,
            max_tokens=template.max_output_tokens,
        )

    def semantic_matches(self, query: str, top_k: int = 5) -> list[VectorMatch]:
        """Vector search that degrades to no matches when embedding fails."""
        try:
            return search(self.db, self.llm, query, top_k=top_k)
        except (LLMError, VectorizeError) as e:
            logger.warning("%s: semantic search unavailable: %s", self.agent_type, e)
            return []

    def previous_insights(
        self, context: UserContext, agent_keyword: str, limit: int = 5
    ) -> list[str]:
        """Confident earlier answers from agents whose type contains ``agent_keyword``."""
        insights = []
        for turn in context.recent_interactions:
            if agent_keyword not in (turn.get("agent_type") or ""):
                continue
            if float(turn.get("confidence") or 0) <= 0.7:
                continue
            text = turn.get("agent_response") or ""
            created = str(turn.get("created_at") or "")[:10]
            insights.append(f"Previous insight ({created}): {text[:120]}...")
            if len(insights) >= limit:
                break
        return insights


__all__ = [
    "AgentRequest",
    "AgentResponse",
    "BaseAgent",
    "Evidence",
    "extract_next_steps",
    "format_message_evidence",
    "message_evidence",
]
