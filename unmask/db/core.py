"""Core database base class with connection management and schema initialization."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, cast

from unmask.db.models import default_db_path
from unmask.db.schema import (
    CURRENT_SCHEMA_VERSION,
    EXPECTED_INDICES,
    SCHEMA_SQL,
)
from unmask.errors import DatabaseError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Version-specific migration functions
# ---------------------------------------------------------------------------


def _add_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> None:
    table_exists = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    if table_exists is None:
        # SCHEMA_SQL creates it with every column
        return
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
        logger.info("Added %s column to %s table", column, table)
    except sqlite3.OperationalError as e:
        if "duplicate column" in str(e).lower():
            logger.debug("%s.%s column already exists", table, column)
        else:
            logger.error("Adding %s.%s failed: %s", table, column, e)
            raise


def _migrate_v1_to_v2(conn: sqlite3.Connection) -> None:
    """Migration v1 -> v2: Add conflict and sentiment score columns to messages."""
    _add_column(conn, "messages", "conflict_detected", "BOOLEAN DEFAULT 0")
    _add_column(conn, "messages", "sentiment_score", "REAL")


def _migrate_v2_to_v3(conn: sqlite3.Connection) -> None:
    """Migration v2 -> v3: Link chunks to their stored vectors."""
    _add_column(conn, "conversation_chunks", "chunk_text", "TEXT")
    _add_column(conn, "conversation_chunks", "vector_id", "TEXT")
    if conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name='conversation_chunks'"
    ).fetchone():
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_chunks_vector_id "
            "ON conversation_chunks(vector_id)"
        )


# (from_version, callable), applied in order when the stored version is <= from_version
_MIGRATIONS: list[tuple[int, Any]] = [
    (1, _migrate_v1_to_v2),
    (2, _migrate_v2_to_v3),
]


class UnmaskDBBase:
    """Base class for the UNMASK database with connection management and schema init.

    Connections are thread-local; FastAPI runs sync endpoints in a thread
    pool, so each worker thread reuses its own connection.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize database manager.

        Args:
            db_path: Path to database file. Uses the configured path if None.
        """
        self.db_path = Path(db_path) if db_path else default_db_path()
        self._local = threading.local()
        self._all_connections: set[sqlite3.Connection] = set()
        self._connections_lock = threading.Lock()
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a thread-local connection.

        Returns:
            SQLite connection with row_factory set to sqlite3.Row.
        """
        if getattr(self._local, "connection", None) is None:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA temp_store = MEMORY")
            self._local.connection = conn
            with self._connections_lock:
                self._all_connections.add(conn)
        return cast(sqlite3.Connection, self._local.connection)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection (reuses thread-local connection).

        Commits on success and rolls back if the block raises. sqlite3
        errors are re-raised as DatabaseError.

        Yields:
            SQLite connection with row_factory set to sqlite3.Row.
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Database operation failed: {e}", cause=e) from e
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close all thread-local connections."""
        with self._connections_lock:
            for conn in self._all_connections:
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.debug("Error closing connection: %s", e)
            self._all_connections.clear()
        self._local = threading.local()

    def init_schema(self) -> bool:
        """Initialize database schema.

        Creates all tables if they don't exist and applies column migrations
        to databases created by older versions.

        Returns:
            True if schema was created/updated, False if already current.
        """
        with self.connection() as conn:
            try:
                row = conn.execute(
                    "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
                ).fetchone()
                current_version = row["version"] if row else 0
            except sqlite3.OperationalError:
                current_version = 0

            if current_version >= CURRENT_SCHEMA_VERSION:
                conn.executescript(SCHEMA_SQL)
                logger.debug("Schema already at version %d", current_version)
                return False

            # New databases get every column from SCHEMA_SQL directly
            if current_version > 0:
                for from_version, migrate_fn in _MIGRATIONS:
                    if current_version <= from_version:
                        migrate_fn(conn)

            conn.executescript(SCHEMA_SQL)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (CURRENT_SCHEMA_VERSION,),
            )
            logger.info(
                "Schema updated from version %d to %d",
                current_version,
                CURRENT_SCHEMA_VERSION,
            )
            return True

    def exists(self) -> bool:
        """Check if the database file exists."""
        return self.db_path.exists()

    def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.connection() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except DatabaseError:
            return False

    def verify_indices(self, create_missing: bool = True) -> dict[str, Any]:
        """Verify that required indices exist and optionally create missing ones.

        Args:
            create_missing: If True, create any missing indices.

        Returns:
            Dictionary with existing, missing and created index names.
        """
        with self.connection() as conn:
            query = "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
            existing = {row["name"] for row in conn.execute(query)}
            missing = EXPECTED_INDICES - existing
            created: set[str] = set()

            if create_missing and missing:
                conn.executescript(SCHEMA_SQL)
                now_existing = {row["name"] for row in conn.execute(query)}
                created = now_existing - existing
                existing = now_existing
                missing = EXPECTED_INDICES - existing
                if created:
                    logger.info("Created missing indices: %s", created)

            return {
                "existing": existing,
                "missing": missing,
                "created": created,
                "all_present": not missing,
            }
