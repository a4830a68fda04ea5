"""Chat orchestrator: load context, classify intent, route, execute, record.

Usage:
    orchestrator = get_orchestrator()
    response = orchestrator.process("default-user", "Why do we keep fighting?")
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from unmask.agents.base import AgentRequest, AgentResponse, BaseAgent
from unmask.agents.coaching import CoachingAgent
from unmask.agents.conflict import ConflictAgent
from unmask.agents.emotional import EmotionalAgent
from unmask.agents.memory import MemoryAgent
from unmask.agents.pattern import PatternAgent
from unmask.agents.registry import (
    COACHING_AGENT,
    CONFLICT_AGENT,
    EMOTIONAL_AGENT,
    FALLBACK_ROUTE,
    MEMORY_AGENT,
    PATTERN_AGENT,
    route_for_intent,
)
from unmask.cache import UserContextCache
from unmask.config import OrchestratorConfig, get_config
from unmask.errors import AgentError, DatabaseError, ErrorCode, LLMError
from unmask.intent import (
    IntentClassificationResult,
    KeywordIntentClassifier,
    UserContext,
    detect_emotional_context,
    detect_urgency,
    parse_intent,
)
from unmask.observability import bind_user, log_event, timed_operation
from unmask.prompts import INTENT_TEMPLATE, format_history, format_user_context

if TYPE_CHECKING:
    from unmask.db import UnmaskDB
    from unmask.llm import LLMClient

logger = logging.getLogger(__name__)

AGENT_CLASSES: dict[str, type[BaseAgent]] = {
    COACHING_AGENT: CoachingAgent,
    PATTERN_AGENT: PatternAgent,
    CONFLICT_AGENT: ConflictAgent,
    EMOTIONAL_AGENT: EmotionalAgent,
    MEMORY_AGENT: MemoryAgent,
}

FALLBACK_AGENT_TYPE = "orchestrator-fallback"


def fallback_response() -> AgentResponse:
    """Fixed answer used when the pipeline fails."""
    return AgentResponse(
        agent_type=FALLBACK_AGENT_TYPE,
        response=(
            "I understand you're looking for relationship guidance. While I process your "
            "request, let me help you think through this situation. Could you provide a bit "
            "more context about what's specifically on your mind right now?"
        ),
        confidence=0.5,
        next_steps=[
            "Try rephrasing your question with more specific details",
            "Share what outcome you're hoping for",
            "Let me know if this is about a recent conversation or ongoing pattern",
        ],
    )


class Orchestrator:
    """Routes chat messages to the specialist agents.

    Thread Safety:
        Agents are created lazily under a lock. The user-context cache is
        thread-safe.
    """

    def __init__(
        self,
        db: UnmaskDB,
        llm: LLMClient,
        config: OrchestratorConfig | None = None,
        classifier: KeywordIntentClassifier | None = None,
    ) -> None:
        self.db = db
        self.llm = llm
        self.config = config or get_config().orchestrator
        self.classifier = classifier or KeywordIntentClassifier()
        self.context_cache = UserContextCache(ttl_seconds=self.config.context_cache_ttl_seconds)
        self._agents: dict[str, BaseAgent] = {}
        self._lock = threading.Lock()

    def agent(self, agent_type: str) -> BaseAgent:
        """Get (or create) the agent registered under ``agent_type``.

        Raises:
            AgentError: If no agent class is registered for the type.
        """
        if agent_type not in self._agents:
            with self._lock:
                if agent_type not in self._agents:
                    cls = AGENT_CLASSES.get(agent_type)
                    if cls is None:
                        raise AgentError(
                            f"Unknown agent type: {agent_type}",
                            agent_type=agent_type,
                            code=ErrorCode.AGT_UNKNOWN,
                        )
                    self._agents[agent_type] = cls(self.db, self.llm)
        return self._agents[agent_type]

    # Context

    def load_user_context(self, user_id: str) -> UserContext:
        """Load a user's context, cached for the configured TTL.

        Unknown users (and database failures) get a default context, which is
        not cached.
        """
        cached = self.context_cache.get(user_id)
        if cached is not None:
            return cached

        try:
            profile = self.db.get_user(user_id)
            if profile is None:
                return UserContext(user_id=user_id)
            context = UserContext(
                user_id=user_id,
                current_health_score=self.db.latest_health_score(user_id),
                primary_concerns=self.db.active_concerns(user_id),
                relationship_start_date=profile.relationship_start_date,
                partner_name=profile.partner_name,
                communication_style=profile.communication_style or "unknown",
                attachment_style=profile.attachment_style,
                recent_interactions=self.db.recent_interactions(
                    user_id, limit=self.config.history_limit
                ),
            )
        except DatabaseError as e:
            logger.error("Error loading user context for %s: %s", user_id, e)
            return UserContext(user_id=user_id)

        self.context_cache.put(user_id, context)
        return context

    # Intent

    def classify(
        self,
        message: str,
        context: UserContext,
        history: list[dict[str, Any]] | None = None,
    ) -> IntentClassificationResult:
        """Classify a message with the configured intent mode.

        In "llm" mode the chat model picks a label; if no key is configured or
        the call fails, the keyword classifier is used instead.
        """
        if not history:
            history = list(reversed(context.recent_interactions))

        if self.config.intent_mode == "llm" and self.llm.available:
            try:
                return self._classify_with_llm(message, context, history)
            except LLMError as e:
                logger.warning("LLM intent classification failed, using keywords: %s", e)

        return self.classifier.classify(message, context, history)

    def _classify_with_llm(
        self,
        message: str,
        context: UserContext,
        history: list[dict[str, Any]],
    ) -> IntentClassificationResult:
        turns = [
            {
                "role": turn.get("role") or "user",
                "content": turn.get("content") or turn.get("user_message") or "",
            }
            for turn in history
        ]
        answer = self.llm.complete(
            INTENT_TEMPLATE.messages(
                context=format_user_context(context),
                history=format_history(turns),
                message=message,
            ),
            temperature=INTENT_TEMPLATE.temperature,
            max_tokens=INTENT_TEMPLATE.max_output_tokens,
        )
        intent = parse_intent(answer)
        return IntentClassificationResult(
            intent=intent,
            confidence=route_for_intent(intent).confidence,
            reasoning=f"Model classification: {answer.strip()[:80]}",
            emotional_context=detect_emotional_context(message),
            urgency=detect_urgency(message),
            method="llm",
        )

    # Execution

    def execute(self, request: AgentRequest) -> AgentResponse:
        """Run the routed agent, falling back to the coaching agent on failure.

        Raises:
            Exception: Whatever the coaching agent raised, when it fails.
        """
        primary = request.route.primary_agent if request.route else COACHING_AGENT
        try:
            return self.agent(primary).respond(request)
        except Exception as e:
            if primary == COACHING_AGENT:
                raise
            logger.warning("Agent %s failed, falling back to coaching: %s", primary, e)
            fallback = replace(request, route=FALLBACK_ROUTE)
            return self.agent(COACHING_AGENT).respond(fallback)

    def process(
        self,
        user_id: str,
        message: str,
        history: list[dict[str, Any]] | None = None,
    ) -> AgentResponse:
        """Answer one chat message.

        Never raises: any failure yields :func:`fallback_response`.
        """
        try:
            with bind_user(user_id), timed_operation(logger, "orchestrator.process") as ctx:
                context = self.load_user_context(user_id)
                intent = self.classify(message, context, history)
                route = route_for_intent(intent.intent)
                log_event(
                    logger,
                    "orchestrator.routed",
                    level=logging.DEBUG,
                    intent=intent.intent.value,
                    agent=route.primary_agent,
                    confidence=intent.confidence,
                    method=intent.method,
                )
                response = self.execute(
                    AgentRequest(message=message, context=context, intent=intent, route=route)
                )
                self._record(user_id, message, response, intent)
                ctx.update(agent=response.agent_type, confidence=response.confidence)
            return response
        except Exception as e:
            logger.error("Orchestrator error: %s", e)
            return fallback_response()

    def _record(
        self,
        user_id: str,
        message: str,
        response: AgentResponse,
        intent: IntentClassificationResult,
    ) -> None:
        """Store the turn in the user's history.

        A failed write is logged and does not affect the answer.
        """
        try:
            self.db.record_interaction(
                user_id,
                message,
                response.agent_type,
                response.response,
                response.confidence,
                intent=intent.intent.value,
            )
        except DatabaseError as e:
            logger.warning("Failed to record interaction for %s: %s", user_id, e)
        finally:
            self.context_cache.invalidate(user_id)


_orchestrator: Orchestrator | None = None
_orchestrator_lock = threading.Lock()


def get_orchestrator() -> Orchestrator:
    """Get or create the singleton orchestrator over the global DB and LLM client."""
    global _orchestrator
    if _orchestrator is None:
        with _orchestrator_lock:
            if _orchestrator is None:
                from unmask.db import get_db
                from unmask.llm import get_llm_client

                _orchestrator = Orchestrator(get_db(), get_llm_client())
    return _orchestrator


def reset_orchestrator() -> None:
    global _orchestrator
    with _orchestrator_lock:
        _orchestrator = None


__all__ = [
    "AGENT_CLASSES",
    "FALLBACK_AGENT_TYPE",
    "Orchestrator",
    "fallback_response",
    "get_orchestrator",
    "reset_orchestrator",
]
