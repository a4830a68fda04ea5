"""Prompt templates and builders for agent, RAG and intent completions.

All system prompts live here. Agents fill a template with the user's
context block and an evidence block drawn from stored data.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from unmask.intent import UserContext

MAX_CONTEXT_CHARS = 6000


@dataclass
class PromptTemplate:
    """A prompt template with placeholders.

    Attributes:
        name: Template identifier
        system_message: Role/context for the model
        template: Format string with {placeholders}
        max_output_tokens: Suggested max tokens for response
        temperature: Suggested sampling temperature
    """

    name: str
    system_message: str
    template: str
    max_output_tokens: int = 800
    temperature: float = 0.7

    def messages(self, **values: str) -> list[dict[str, str]]:
        """Render into OpenAI chat messages."""
        return [
            {"role": "system", "content": self.system_message},
            {"role": "user", "content": self.template.format(**values)},
        ]


COACH_SYSTEM = """You are a relationship intelligence coach with the emotional \
intelligence of a skilled therapist and the pattern recognition of a data analyst.

You have access to the user's real conversation history. Help them see their \
relationship clearly and grow from it: honest, warm, never judgmental.

Ground every observation in the message excerpts provided. Never give generic \
advice; tailor everything to this couple's dynamic. Use attachment theory where it \
explains a pattern.

Structure every answer as:
1. Insight Summary: name the core pattern or dynamic.
2. Supporting Evidence: 2-3 specific excerpts and why they matter.
3. Coaching Questions: 2-3 questions that prompt reflection.
4. Suggested Next Steps: concrete actions for the next few days, one per line \
starting with "- "."""

_USER_TEMPLATE = """## Question
"{message}"

## Relationship Context
{context}

## {evidence_title}
{evidence}

## Focus
{focus}"""

COACHING_TEMPLATE = PromptTemplate(
    name="coaching",
    system_message=COACH_SYSTEM,
    template=_USER_TEMPLATE,
)

# Appended to the coaching system prompt for the selected style
COACHING_STYLES: dict[str, str] = {
    "strategic": """STRATEGIC APPROACH:
- Focus on long-term relationship architecture and systematic change
- Identify root patterns, not surface symptoms
- Give a clear plan with outcomes they can observe""",
    "supportive": """SUPPORTIVE APPROACH:
- Validate their feelings while guiding toward growth
- Help them process emotions before moving to action
- Build on strengths and past successes""",
    "direct": """DIRECT APPROACH:
- Name what they are avoiding or not seeing clearly
- Be compassionate but do not soften the point
- Give clear, concrete action steps""",
    "exploratory": """EXPLORATORY APPROACH:
- Ask questions that reveal new insight
- Connect current patterns to deeper emotional themes
- Let them reach their own answers with gentle guidance""",
}


def coaching_template(style: str) -> PromptTemplate:
    """Coaching template with the style section appended to the system prompt."""
    return PromptTemplate(
        name=f"coaching_{style}",
        system_message=f"{COACH_SYSTEM}\n\n{COACHING_STYLES[style]}",
        template=_USER_TEMPLATE,
    )


PATTERN_TEMPLATE = PromptTemplate(
    name="pattern_analysis",
    system_message=COACH_SYSTEM
    + "\n\nYou are acting as a pattern analyst: describe how communication frequency, "
    "sentiment and conflict have shifted over time and what is driving the shift.",
    template=_USER_TEMPLATE,
)

CONFLICT_TEMPLATE = PromptTemplate(
    name="conflict_analysis",
    system_message=COACH_SYSTEM
    + "\n\nYou are acting as a conflict specialist: identify how conflicts start, "
    "escalate and resolve, name recurring triggers, and suggest a repair strategy.",
    template=_USER_TEMPLATE,
)

EMOTIONAL_TEMPLATE = PromptTemplate(
    name="emotional_health",
    system_message=COACH_SYSTEM
    + "\n\nYou are acting as an emotional intelligence specialist: interpret the health "
    "score and its breakdown, emotional seasons and attachment signals.",
    template=_USER_TEMPLATE,
)

MEMORY_TEMPLATE = PromptTemplate(
    name="memory_search",
    system_message="You are a relationship historian. Answer the question using only the "
    "retrieved conversations. Quote dates and excerpts. If the conversations do not "
    "answer the question, say so.",
    template=_USER_TEMPLATE,
    temperature=0.3,
)

RAG_SYSTEM = """You are an expert relationship analyst with a deep understanding of \
communication patterns, emotional dynamics and interpersonal relationships. You have \
access to the user's actual text message conversations with their partner.

CONVERSATION DATA:
{context}

Analyze the conversation data to give specific, actionable insights about:
- communication patterns: frequency, timing, who initiates, engagement
- emotional dynamics: sentiment, support, conflict and repair, affection
- relationship indicators: shared plans, support during challenges, balance of topics
- specific observations: recurring themes, changes over time, concrete examples

Reference the actual conversations and quote messages where relevant. Offer both \
strengths and areas for growth. Avoid generic advice. If asked about patterns, give \
dates, frequencies or examples."""

INTENT_TEMPLATE = PromptTemplate(
    name="intent_classification",
    system_message="You are an expert relationship coach intent classifier.",
    template="""USER CONTEXT:
{context}

RECENT CONVERSATION:
{history}

USER MESSAGE: "{message}"

INTENT CATEGORIES:
1. IMMEDIATE_COACHING - Needs help with a current situation or drafting a response
2. PATTERN_ANALYSIS - Wants to understand trends or changes over time
3. CONFLICT_ANALYSIS - Analyzing specific fights, recurring issues or tension
4. EMOTIONAL_CHECK - General relationship health inquiry, mood check
5. HISTORICAL_INSIGHT - Looking for specific past conversations, periods or events
6. PREDICTIVE_GUIDANCE - Wants recommendations for future actions or focus areas
7. DATA_QUERY - Searching for specific information in their relationship data
8. RELATIONSHIP_HEALTH - Asking about overall relationship metrics and scores
9. ATTACHMENT_COACHING - Attachment styles, emotional needs, security
10. COMMUNICATION_TRAINING - Wants to improve communication skills

Respond with just the intent category (e.g., "IMMEDIATE_COACHING").""",
    max_output_tokens=20,
    temperature=0.0,
)


def relationship_duration(start_date: str | None, now: datetime | None = None) -> str:
    """Human-readable time since ``start_date`` ("12 days", "3 months", "2 years")."""
    if not start_date:
        return "Unknown duration"
    try:
        start = datetime.fromisoformat(start_date.replace("Z", "+00:00"))
    except ValueError:
        return "Unknown duration"
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    days = abs((now - start).days)
    if days < 30:
        return f"{days} days"
    if days < 365:
        return f"{days // 30} months"
    return f"{days // 365} years"


def format_user_context(context: UserContext) -> str:
    score = (
        f"{context.current_health_score:.1f}/10"
        if context.current_health_score is not None
        else "Not calculated"
    )
    return "\n".join(
        [
            f"- Partner: {context.partner_name or 'Partner'}",
            f"- Relationship duration: {relationship_duration(context.relationship_start_date)}",
            f"- Communication style: {context.communication_style or 'unknown'}",
            f"- Attachment style: {context.attachment_style or 'unknown'}",
            f"- Current health score: {score}",
            f"- Primary concerns: {', '.join(context.primary_concerns) or 'None identified'}",
        ]
    )


def truncate_context(text: str, max_chars: int = MAX_CONTEXT_CHARS) -> str:
    """Keep the first ``max_chars`` characters, cut at a line boundary."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    last_newline = cut.rfind("\n")
    if last_newline > max_chars - 200:
        cut = cut[:last_newline]
    return f"{cut}\n[Further evidence truncated]"


def format_history(history: Sequence[dict[str, str]], limit: int = 3) -> str:
    lines = [
        f"{turn.get('role', 'user')}: {turn.get('content', '')}" for turn in list(history)[-limit:]
    ]
    return "\n".join(lines) or "(none)"


def build_rag_messages(sources: Sequence[str], question: str) -> list[dict[str, str]]:
    context = "\n\n".join(f"[{i}] {text}" for i, text in enumerate(sources, start=1))
    return [
        {"role": "system", "content": RAG_SYSTEM.format(context=context)},
        {"role": "user", "content": question},
    ]


__all__ = [
    "COACHING_STYLES",
    "COACHING_TEMPLATE",
    "CONFLICT_TEMPLATE",
    "EMOTIONAL_TEMPLATE",
    "INTENT_TEMPLATE",
    "MEMORY_TEMPLATE",
    "PATTERN_TEMPLATE",
    "PromptTemplate",
    "RAG_SYSTEM",
    "build_rag_messages",
    "coaching_template",
    "format_history",
    "format_user_context",
    "relationship_duration",
    "truncate_context",
]
