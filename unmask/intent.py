"""Intent classification for chat routing.

Supports:
- Keyword scoring (default, deterministic)
- Parsing a free-text LLM answer into an intent label

Keyword scoring counts, per intent, how many of its phrases occur as
substrings of the lowercased message, adds a few context bonuses, and picks
the highest score. Confidence is ``min(score * 0.2, 0.95)``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal


class UserIntent(StrEnum):
    """What the user wants from a chat message."""

    IMMEDIATE_COACHING = "IMMEDIATE_COACHING"
    PATTERN_ANALYSIS = "PATTERN_ANALYSIS"
    CONFLICT_ANALYSIS = "CONFLICT_ANALYSIS"
    EMOTIONAL_CHECK = "EMOTIONAL_CHECK"
    HISTORICAL_INSIGHT = "HISTORICAL_INSIGHT"
    PREDICTIVE_GUIDANCE = "PREDICTIVE_GUIDANCE"
    DATA_QUERY = "DATA_QUERY"
    RELATIONSHIP_HEALTH = "RELATIONSHIP_HEALTH"
    ATTACHMENT_COACHING = "ATTACHMENT_COACHING"
    COMMUNICATION_TRAINING = "COMMUNICATION_TRAINING"


EmotionalContext = Literal["positive", "negative", "neutral", "mixed"]
Urgency = Literal["low", "medium", "high"]

# Phrases are lowercase; they are matched against the lowercased message.
INTENT_PATTERNS: dict[UserIntent, tuple[str, ...]] = {
    UserIntent.IMMEDIATE_COACHING: (
        "help me respond", "what should i say", "how do i handle",
        "just happened", "right now", "urgent", "need advice",
        "don't know what to do", "help me figure out",
    ),
    UserIntent.PATTERN_ANALYSIS: (
        "how has", "over time", "changed", "pattern", "trend",
        "compared to", "different now", "used to", "lately",
        "evolution", "shift", "development",
    ),
    UserIntent.CONFLICT_ANALYSIS: (
        "fight", "argue", "disagree", "conflict", "tension",
        "keeps happening", "same issue", "always about",
        "why do we", "problem with", "struggle with",
    ),
    UserIntent.EMOTIONAL_CHECK: (
        "how are we", "feeling about", "relationship status",
        "doing well", "worried about", "concerned",
        "overall", "general", "check in",
    ),
    UserIntent.HISTORICAL_INSIGHT: (
        "show me", "find", "when did", "remember when",
        "look back", "what happened", "during", "period",
        "conversations about", "messages from",
    ),
    UserIntent.PREDICTIVE_GUIDANCE: (
        "what should", "focus on", "work on", "improve",
        "next steps", "going forward", "future", "recommend",
        "suggest", "priority", "goals",
    ),
    UserIntent.DATA_QUERY: (
        "search", "find messages", "show conversations",
        "data about", "statistics", "count", "frequency",
        "when did we", "how often", "filter",
    ),
    UserIntent.RELATIONSHIP_HEALTH: (
        "health score", "how healthy", "relationship status",
        "overall rating", "metrics", "scoring", "assessment",
        "evaluation", "grade", "measure",
    ),
    UserIntent.ATTACHMENT_COACHING: (
        "attachment", "insecure", "anxious", "avoidant",
        "secure", "emotional needs", "intimacy",
        "connection style", "bonding", "dependency",
    ),
    UserIntent.COMMUNICATION_TRAINING: (
        "communicate better", "improve communication",
        "better at talking", "express myself", "listening",
        "conversation skills", "articulate", "understand each other",
    ),
}

POSITIVE_WORDS = ("good", "great", "happy", "love", "wonderful", "amazing", "better")
NEGATIVE_WORDS = ("bad", "terrible", "hate", "awful", "worse", "angry", "sad", "frustrated")
HIGH_URGENCY_WORDS = ("urgent", "now", "immediately", "asap", "emergency", "crisis")
MEDIUM_URGENCY_WORDS = ("soon", "today", "quickly", "important", "need to")

DEFAULT_CONFIDENCE = 0.3
CONFIDENCE_PER_MATCH = 0.2
MAX_CONFIDENCE = 0.95


@dataclass
class UserContext:
    """What the classifier and agents know about the user.

    Attributes:
        user_id: Stable user identifier.
        current_health_score: Most recent stored health score (0-10), if any.
        primary_concerns: Active concerns, newest first.
        relationship_start_date: ISO date the relationship began.
        partner_name: Partner's display name.
        communication_style: Free-text style description.
        attachment_style: Free-text attachment style.
        recent_interactions: Most recent chat turns, newest first.
    """

    user_id: str = "default-user"
    current_health_score: float | None = None
    primary_concerns: list[str] = field(default_factory=list)
    relationship_start_date: str | None = None
    partner_name: str | None = None
    communication_style: str | None = None
    attachment_style: str | None = None
    recent_interactions: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> UserContext:
        """Build a context from API input (camelCase or snake_case keys)."""
        if not data:
            return cls()

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return None

        score = pick("currentHealthScore", "current_health_score")
        return cls(
            user_id=pick("userId", "user_id") or "default-user",
            current_health_score=float(score) if score is not None else None,
            primary_concerns=list(pick("primaryConcerns", "primary_concerns") or []),
            relationship_start_date=pick("relationshipStartDate", "relationship_start_date"),
            partner_name=pick("partnerName", "partner_name"),
            communication_style=pick("communicationStyle", "communication_style"),
            attachment_style=pick("attachmentStyle", "attachment_style"),
        )


@dataclass
class IntentClassificationResult:
    """Result from intent classification."""

    intent: UserIntent
    confidence: float
    reasoning: str
    key_phrases: list[str] = field(default_factory=list)
    emotional_context: EmotionalContext = "neutral"
    urgency: Urgency = "low"
    method: str = "keyword"
    all_scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "keyPhrases": self.key_phrases,
            "emotionalContext": self.emotional_context,
            "urgency": self.urgency,
        }


def detect_emotional_context(message: str) -> EmotionalContext:
    """Classify the emotional tone of a message from word lists."""
    text = message.lower()
    positive = sum(1 for w in POSITIVE_WORDS if w in text)
    negative = sum(1 for w in NEGATIVE_WORDS if w in text)
    if positive and negative:
        return "mixed"
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def detect_urgency(message: str) -> Urgency:
    text = message.lower()
    if any(w in text for w in HIGH_URGENCY_WORDS):
        return "high"
    if any(w in text for w in MEDIUM_URGENCY_WORDS):
        return "medium"
    return "low"


def _history_agent_type(entry: Any) -> str | None:
    if isinstance(entry, Mapping):
        return entry.get("agentType") or entry.get("agent_type")
    return getattr(entry, "agent_type", None)


class KeywordIntentClassifier:
    """Deterministic keyword-scoring intent classifier."""

    def __init__(self, patterns: Mapping[UserIntent, Sequence[str]] | None = None) -> None:
        self.patterns = dict(patterns or INTENT_PATTERNS)

    def classify(
        self,
        message: str,
        context: UserContext | None = None,
        history: Sequence[Any] | None = None,
    ) -> IntentClassificationResult:
        """Classify a chat message.

        Args:
            message: The user's message.
            context: User context for score bonuses.
            history: Prior chat turns; entries may carry ``agentType``.

        Returns:
            IntentClassificationResult for the best-scoring intent.
        """
        context = context or UserContext()
        text = message.lower()

        scores: dict[UserIntent, float] = {}
        key_phrases: list[str] = []
        for intent, phrases in self.patterns.items():
            score = 0.0
            for phrase in phrases:
                if phrase in text:
                    score += 1
                    key_phrases.append(phrase)
            scores[intent] = score

        self._apply_context_bonuses(scores, context, history or [])

        # sorted() is stable, so ties keep declaration order
        ranked = [
            (intent, score)
            for intent, score in sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
            if score > 0
        ]
        emotional = detect_emotional_context(message)
        urgency = detect_urgency(message)
        all_scores = {intent.value: score for intent, score in scores.items()}

        if not ranked:
            return IntentClassificationResult(
                intent=UserIntent.IMMEDIATE_COACHING,
                confidence=DEFAULT_CONFIDENCE,
                reasoning="No clear patterns detected, defaulting to coaching",
                key_phrases=[],
                emotional_context=emotional,
                urgency=urgency,
                all_scores=all_scores,
            )

        top_intent, top_score = ranked[0]
        return IntentClassificationResult(
            intent=top_intent,
            confidence=min(top_score * CONFIDENCE_PER_MATCH, MAX_CONFIDENCE),
            reasoning=f"Detected patterns: {', '.join(key_phrases[:3])}",
            key_phrases=key_phrases[:5],
            emotional_context=emotional,
            urgency=urgency,
            all_scores=all_scores,
        )

    @staticmethod
    def _apply_context_bonuses(
        scores: dict[UserIntent, float],
        context: UserContext,
        history: Sequence[Any],
    ) -> None:
        if any(_history_agent_type(h) == "coaching-agent" for h in list(history)[-3:]):
            scores[UserIntent.IMMEDIATE_COACHING] += 0.5

        if context.current_health_score and context.current_health_score < 5:
            scores[UserIntent.EMOTIONAL_CHECK] += 1
            scores[UserIntent.RELATIONSHIP_HEALTH] += 1

        if any("conflict" in concern.lower() for concern in context.primary_concerns):
            scores[UserIntent.CONFLICT_ANALYSIS] += 1


def parse_intent(text: str) -> UserIntent:
    """Map a free-text model answer to an intent label.

    Returns the first label (in declaration order) contained in the
    uppercased text, or IMMEDIATE_COACHING if none is.
    """
    upper = text.upper()
    for intent in UserIntent:
        if intent.value in upper:
            return intent
    return UserIntent.IMMEDIATE_COACHING


__all__ = [
    "INTENT_PATTERNS",
    "IntentClassificationResult",
    "KeywordIntentClassifier",
    "UserContext",
    "UserIntent",
    "detect_emotional_context",
    "detect_urgency",
    "parse_intent",
]
