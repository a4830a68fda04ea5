"""Database schema SQL and migration constants for UNMASK."""

# Schema SQL - Version 3 (vector store, user context tables)
SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Imported text messages, one row per message
CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT,                        -- export date column, as imported
    time TEXT,
    date_time TEXT,                   -- ISO-8601 timestamp used for ordering
    type TEXT,                        -- 'Incoming' / 'Outgoing'
    sender TEXT,
    message TEXT NOT NULL,
    attachment TEXT,
    notes TEXT,
    sentiment TEXT,                   -- free-text label from the export or LLM
    sentiment_score REAL,
    category TEXT,
    tag TEXT,
    conflict_detected BOOLEAN DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Conversation chunks produced by the 30-minute gap chunker
CREATE TABLE IF NOT EXISTS conversation_chunks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    message_count INTEGER NOT NULL DEFAULT 0,
    chunk_summary TEXT,
    chunk_text TEXT,
    emotional_tone TEXT DEFAULT 'neutral'
        CHECK (emotional_tone IN ('positive', 'negative', 'neutral', 'mixed')),
    conflict_detected BOOLEAN DEFAULT 0,
    sentiment_score REAL DEFAULT 5.0 CHECK (sentiment_score >= 0 AND sentiment_score <= 10),
    participants TEXT,                -- comma separated sender names
    conversation_type TEXT DEFAULT 'general',
    relationship_id INTEGER DEFAULT 1,
    vector_id TEXT UNIQUE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS conversation_tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chunk_id INTEGER NOT NULL REFERENCES conversation_chunks(id) ON DELETE CASCADE,
    tag_name TEXT NOT NULL,
    tag_category TEXT,
    confidence_score REAL DEFAULT 1.0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(chunk_id, tag_name)
);

-- Embedding store for conversation chunks (float32 little-endian blobs)
CREATE TABLE IF NOT EXISTS chunk_vectors (
    vector_id TEXT PRIMARY KEY,
    embedding BLOB NOT NULL,
    dim INTEGER NOT NULL,
    metadata_json TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS relationship_tracker (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    partner_name TEXT,
    start_date TEXT,
    status TEXT DEFAULT 'active',
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS relationship_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_date TEXT NOT NULL,
    event_time TEXT,
    event_type TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    notes TEXT,
    category TEXT DEFAULT 'general',
    sentiment TEXT DEFAULT 'neutral',
    significance INTEGER DEFAULT 3 CHECK (significance BETWEEN 1 AND 5),
    initiated_by TEXT,
    location TEXT,
    mood_before TEXT,
    mood_after TEXT,
    relationship_id INTEGER DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Orchestrator user context
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    relationship_start_date TEXT,
    partner_name TEXT,
    communication_style TEXT,
    attachment_style TEXT,
    last_interaction TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS relationship_scores (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    health_score REAL NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS user_concerns (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    concern_text TEXT NOT NULL,
    is_active BOOLEAN DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS user_interactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    user_message TEXT NOT NULL,
    agent_type TEXT,
    agent_response TEXT,
    confidence REAL,
    intent TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_messages_date_time ON messages(date_time);
CREATE INDEX IF NOT EXISTS idx_messages_sender ON messages(sender);
CREATE INDEX IF NOT EXISTS idx_messages_sentiment ON messages(sentiment);
CREATE INDEX IF NOT EXISTS idx_messages_conflict ON messages(conflict_detected);
CREATE INDEX IF NOT EXISTS idx_chunks_start_time ON conversation_chunks(start_time);
CREATE INDEX IF NOT EXISTS idx_chunks_tone ON conversation_chunks(emotional_tone);
CREATE INDEX IF NOT EXISTS idx_tags_chunk ON conversation_tags(chunk_id);
CREATE INDEX IF NOT EXISTS idx_events_date ON relationship_events(event_date);
CREATE INDEX IF NOT EXISTS idx_events_type ON relationship_events(event_type);
CREATE INDEX IF NOT EXISTS idx_scores_user ON relationship_scores(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_concerns_user ON user_concerns(user_id, is_active);
CREATE INDEX IF NOT EXISTS idx_interactions_user ON user_interactions(user_id, created_at);
"""

CURRENT_SCHEMA_VERSION = 3

EXPECTED_INDICES = {
    "idx_messages_date_time",
    "idx_messages_sender",
    "idx_messages_sentiment",
    "idx_messages_conflict",
    "idx_chunks_start_time",
    "idx_chunks_tone",
    "idx_tags_chunk",
    "idx_events_date",
    "idx_events_type",
    "idx_scores_user",
    "idx_concerns_user",
    "idx_interactions_user",
}

# Columns that update endpoints may touch, per table
UPDATABLE_MESSAGE_FIELDS = frozenset(
    {"conflict_detected", "sentiment_score", "sentiment", "category", "tag", "notes"}
)
UPDATABLE_EVENT_FIELDS = frozenset(
    {
        "event_date",
        "event_time",
        "event_type",
        "title",
        "description",
        "notes",
        "category",
        "sentiment",
        "significance",
        "initiated_by",
        "location",
        "mood_before",
        "mood_after",
    }
)
UPDATABLE_TRACKER_FIELDS = frozenset({"name", "partner_name", "start_date", "status", "notes"})
