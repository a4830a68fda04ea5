"""UNMASK Database Management - SQLite store for messages, chunks and context.

Manages ~/.unmask/unmask.db which stores:
- Imported text messages
- Conversation chunks produced by the gap chunker, with tags
- Chunk embeddings for semantic search
- Relationship events and tracker rows
- User profile, health scores, concerns and chat interactions

Usage:
    unmask init-db                     # Create database
    unmask import-csv export.csv       # Load messages
    unmask vectorize --all             # Chunk and embed messages
"""

import threading
from pathlib import Path

from unmask.db.chunks import ChunkMixin
from unmask.db.core import UnmaskDBBase
from unmask.db.events import EventMixin, TrackerMixin
from unmask.db.messages import MessageFilters, MessageMixin
from unmask.db.models import (
    ChunkRecord,
    Message,
    RelationshipEvent,
    TrackerEntry,
    UserProfile,
    format_timestamp,
    parse_timestamp,
)
from unmask.db.schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from unmask.db.users import UserMixin
from unmask.db.vectors import VectorMatch, VectorMixin


class UnmaskDB(
    UnmaskDBBase,
    MessageMixin,
    ChunkMixin,
    VectorMixin,
    EventMixin,
    TrackerMixin,
    UserMixin,
):
    """Manager for the UNMASK SQLite database.

    Composed from focused mixin classes:
    - UnmaskDBBase: Connection management, schema init, index verification
    - MessageMixin: Message listing, filtering, updates
    - ChunkMixin: Conversation chunks and tags
    - VectorMixin: Embedding storage and cosine search
    - EventMixin / TrackerMixin: Relationship events and tracker rows
    - UserMixin: Orchestrator user context and interaction log
    """

    pass


# Singleton instance
_db: UnmaskDB | None = None
_db_lock = threading.Lock()


def get_db(db_path: Path | None = None) -> UnmaskDB:
    """Get or create the singleton database instance (schema initialized)."""
    global _db
    if _db is None:
        with _db_lock:
            if _db is None:
                db = UnmaskDB(db_path)
                db.init_schema()
                _db = db
    return _db


def reset_db() -> None:
    """Reset the singleton database instance (closes any open connections)."""
    global _db
    with _db_lock:
        if _db is not None:
            _db.close()
        _db = None


__all__ = [
    "UnmaskDB",
    "get_db",
    "reset_db",
    "ChunkRecord",
    "Message",
    "MessageFilters",
    "RelationshipEvent",
    "TrackerEntry",
    "UserProfile",
    "VectorMatch",
    "format_timestamp",
    "parse_timestamp",
    "CURRENT_SCHEMA_VERSION",
    "SCHEMA_SQL",
]
