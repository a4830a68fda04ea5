"""Conversation chunking - group messages by time gap.

Messages are sorted by timestamp and walked once. Whenever the gap between a
message and the one before it is longer than the threshold (30 minutes by
default) a new chunk starts. An exact 30-minute gap stays in the same chunk.

Each chunk produces:
1. An embedding input: a short header plus the "sender: message" transcript,
   truncated to 2000 characters
2. Vector metadata used by semantic search and RAG
3. A row for the conversation_chunks table
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from unmask.db.models import ChunkRecord, Message, format_timestamp
from unmask.sentiment import polarity_to_score, sentiment_polarity, tone_from_polarities

logger = logging.getLogger(__name__)

DEFAULT_GAP = timedelta(minutes=30)
MAX_EMBEDDING_CHARS = 2000
MAX_METADATA_CHARS = 1000


@dataclass
class ConversationChunk:
    """A run of messages with no gap longer than the chunking threshold."""

    messages: list[Message]
    start_time: datetime
    end_time: datetime
    message_ids: list[int] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def participants(self) -> list[str]:
        """Unique senders in first-seen order."""
        seen: dict[str, None] = {}
        for msg in self.messages:
            seen.setdefault(msg.sender or "Unknown", None)
        return list(seen)

    @property
    def sentiment_summary(self) -> str:
        labels = [m.sentiment for m in self.messages if m.sentiment]
        return ", ".join(labels) if labels else "neutral"

    @property
    def category(self) -> str:
        return self.messages[0].category or "general"

    @property
    def tag(self) -> str:
        return self.messages[0].tag or "conversation"

    @property
    def conversation_text(self) -> str:
        return "\n".join(f"{m.sender or 'Unknown'}: {m.message}" for m in self.messages)

    @property
    def conflict_detected(self) -> bool:
        return any(m.conflict_detected for m in self.messages)

    def polarities(self) -> list[float]:
        values = []
        for msg in self.messages:
            polarity = sentiment_polarity(
                msg.sentiment_score if msg.sentiment_score is not None else msg.sentiment
            )
            if polarity is not None:
                values.append(polarity)
        return values

    @property
    def emotional_tone(self) -> str:
        return tone_from_polarities(self.polarities())

    @property
    def sentiment_score(self) -> float:
        """Average polarity on the 0-10 scale (5.0 when unknown)."""
        values = self.polarities()
        if not values:
            return 5.0
        return polarity_to_score(sum(values) / len(values))

    def embedding_text(self, max_chars: int = MAX_EMBEDDING_CHARS) -> str:
        """Build the text sent to the embedding model."""
        text = self.conversation_text
        body = text[:max_chars] + ("..." if len(text) > max_chars else "")
        return (
            f"Conversation from {self.start_time:%Y-%m-%d %H:%M} "
            f"to {self.end_time:%Y-%m-%d %H:%M}\n"
            f"Participants: {', '.join(self.participants)}\n"
            f"Message count: {self.message_count}\n"
            f"Overall sentiment: {self.sentiment_summary}\n\n"
            f"Messages:\n{body}"
        )

    def vector_id(self, index: int) -> str:
        """Stable id: conversation_{index}_{start epoch ms}."""
        start_ms = int(self.start_time.replace(tzinfo=UTC).timestamp() * 1000)
        return f"conversation_{index}_{start_ms}"

    def metadata(self, max_chars: int = MAX_METADATA_CHARS) -> dict[str, Any]:
        return {
            "text": self.conversation_text[:max_chars],
            "date": format_timestamp(self.start_time),
            "endDate": format_timestamp(self.end_time),
            "sender": ", ".join(self.participants),
            "sentiment": self.sentiment_summary,
            "category": self.category,
            "tag": self.tag,
            "type": "conversation",
            "messageCount": self.message_count,
            "messageIds": self.message_ids,
        }

    def to_record(self, vector_id: str | None = None, relationship_id: int = 1) -> ChunkRecord:
        first_line = self.messages[0].message
        summary = (
            f"{self.message_count} messages between {', '.join(self.participants)}: "
            f"{first_line[:120]}"
        )
        tags = list(dict.fromkeys(m.tag for m in self.messages if m.tag))
        return ChunkRecord(
            id=None,
            start_time=format_timestamp(self.start_time),
            end_time=format_timestamp(self.end_time),
            message_count=self.message_count,
            chunk_summary=summary,
            chunk_text=self.conversation_text,
            emotional_tone=self.emotional_tone,
            conflict_detected=self.conflict_detected,
            sentiment_score=self.sentiment_score,
            participants=", ".join(self.participants),
            conversation_type=self.category,
            relationship_id=relationship_id,
            vector_id=vector_id,
            tags=tags,
        )


def _make_chunk(items: list[tuple[datetime, Message]]) -> ConversationChunk:
    return ConversationChunk(
        messages=[m for _, m in items],
        start_time=items[0][0],
        end_time=items[-1][0],
        message_ids=[m.id for _, m in items if m.id is not None],
    )


def chunk_messages(
    messages: list[Message],
    gap: timedelta = DEFAULT_GAP,
) -> list[ConversationChunk]:
    """Group messages into conversation chunks.

    Args:
        messages: Messages in any order.
        gap: A gap strictly longer than this starts a new chunk.

    Returns:
        Chunks in chronological order. Messages whose timestamp cannot be
        parsed are skipped.
    """
    timed: list[tuple[datetime, Message]] = []
    for msg in messages:
        ts = msg.timestamp
        if ts is None:
            logger.debug("Skipping message %s with unparseable timestamp %r", msg.id, msg.date_time)
            continue
        timed.append((ts, msg))

    if not timed:
        return []

    # sort is stable: equal timestamps keep input order
    timed.sort(key=lambda item: item[0])

    chunks: list[ConversationChunk] = []
    current: list[tuple[datetime, Message]] = [timed[0]]
    for item in timed[1:]:
        if item[0] - current[-1][0] > gap:
            chunks.append(_make_chunk(current))
            current = []
        current.append(item)
    chunks.append(_make_chunk(current))

    logger.debug("Chunked %d messages into %d conversations", len(timed), len(chunks))
    return chunks


__all__ = [
    "ConversationChunk",
    "DEFAULT_GAP",
    "chunk_messages",
]
