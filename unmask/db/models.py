"""Data models and timestamp helpers for the UNMASK database."""

import sqlite3
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from unmask.config import get_config

# Formats seen in message exports besides ISO-8601
_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y-%m-%d",
)


def default_db_path() -> Path:
    """Return the configured database path."""
    return Path(get_config().database.path).expanduser()


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored or imported timestamp into a naive UTC datetime.

    Accepts datetimes, epoch seconds/milliseconds, ISO-8601 strings (with or
    without a trailing ``Z``) and the common export formats above.

    Returns:
        Naive datetime, or None if the value cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=UTC).replace(tzinfo=None)
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _TIMESTAMP_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            else:
                return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way date_time columns store it."""
    return value.strftime("%Y-%m-%dT%H:%M:%S")


@dataclass
class Message:
    """An imported text message."""

    id: int | None
    message: str
    sender: str | None = None
    date: str | None = None
    time: str | None = None
    date_time: str | None = None
    type: str | None = None
    attachment: str | None = None
    notes: str | None = None
    sentiment: str | None = None
    sentiment_score: float | None = None
    category: str | None = None
    tag: str | None = None
    conflict_detected: bool = False

    @property
    def timestamp(self) -> datetime | None:
        """Best-effort timestamp from date_time, falling back to date + time."""
        parsed = parse_timestamp(self.date_time)
        if parsed is None and self.date:
            joined = f"{self.date} {self.time}" if self.time else self.date
            parsed = parse_timestamp(joined)
        return parsed

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Message":
        keys = row.keys()
        return cls(
            id=row["id"],
            message=row["message"],
            sender=row["sender"],
            date=row["date"],
            time=row["time"] if "time" in keys else None,
            date_time=row["date_time"],
            type=row["type"],
            attachment=row["attachment"] if "attachment" in keys else None,
            notes=row["notes"],
            sentiment=row["sentiment"],
            sentiment_score=row["sentiment_score"],
            category=row["category"],
            tag=row["tag"],
            conflict_detected=bool(row["conflict_detected"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ChunkRecord:
    """A stored conversation chunk."""

    id: int | None
    start_time: str
    end_time: str
    message_count: int
    chunk_summary: str | None = None
    chunk_text: str | None = None
    emotional_tone: str = "neutral"
    conflict_detected: bool = False
    sentiment_score: float = 5.0
    participants: str | None = None
    conversation_type: str = "general"
    relationship_id: int = 1
    vector_id: str | None = None
    created_at: str | None = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ChunkRecord":
        return cls(
            id=row["id"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            message_count=row["message_count"],
            chunk_summary=row["chunk_summary"],
            chunk_text=row["chunk_text"],
            emotional_tone=row["emotional_tone"] or "neutral",
            conflict_detected=bool(row["conflict_detected"]),
            sentiment_score=row["sentiment_score"] if row["sentiment_score"] is not None else 5.0,
            participants=row["participants"],
            conversation_type=row["conversation_type"] or "general",
            relationship_id=row["relationship_id"] or 1,
            vector_id=row["vector_id"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RelationshipEvent:
    """A user-logged relationship event."""

    id: int | None
    event_date: str
    event_type: str
    title: str
    event_time: str | None = None
    description: str | None = None
    notes: str | None = None
    category: str = "general"
    sentiment: str = "neutral"
    significance: int = 3
    initiated_by: str | None = None
    location: str | None = None
    mood_before: str | None = None
    mood_after: str | None = None
    relationship_id: int = 1
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "RelationshipEvent":
        return cls(
            **{name: row[name] for name in cls.__dataclass_fields__ if name in row.keys()}
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TrackerEntry:
    """A tracked relationship row."""

    id: int | None
    name: str
    partner_name: str | None = None
    start_date: str | None = None
    status: str = "active"
    notes: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TrackerEntry":
        return cls(
            id=row["id"],
            name=row["name"],
            partner_name=row["partner_name"],
            start_date=row["start_date"],
            status=row["status"] or "active",
            notes=row["notes"],
        )

    def to_table_row(self) -> dict[str, Any]:
        """Shape used by the dashboard's relationship table."""
        return {
            "id": self.id,
            "header": self.name,
            "type": self.partner_name or "",
            "status": self.start_date or "",
            "target": "",
            "limit": "",
            "reviewer": "",
        }


@dataclass
class UserProfile:
    """Stored profile used to build orchestrator context."""

    id: str
    relationship_start_date: str | None = None
    partner_name: str | None = None
    communication_style: str | None = None
    attachment_style: str | None = None
    last_interaction: str | None = None


__all__ = [
    "ChunkRecord",
    "Message",
    "RelationshipEvent",
    "TrackerEntry",
    "UserProfile",
    "default_db_path",
    "format_timestamp",
    "parse_timestamp",
]
