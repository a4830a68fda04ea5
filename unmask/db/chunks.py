"""Conversation chunk and tag operations mixin."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from unmask.db.models import ChunkRecord
from unmask.db.query_builder import QueryBuilder, WhereBuilder

if TYPE_CHECKING:
    from unmask.db.core import UnmaskDBBase


class ChunkMixin:
    """Mixin providing conversation chunk operations."""

    def save_chunk(self: UnmaskDBBase, chunk: ChunkRecord) -> int:
        """Insert a chunk, or update the existing row with the same vector_id.

        Re-running vectorization over the same messages therefore does not
        duplicate chunks.

        Returns:
            Row id of the stored chunk.
        """
        with self.connection() as conn:
            row = conn.execute(
                """
                INSERT INTO conversation_chunks
                (start_time, end_time, message_count, chunk_summary, chunk_text,
                 emotional_tone, conflict_detected, sentiment_score, participants,
                 conversation_type, relationship_id, vector_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(vector_id) DO UPDATE SET
                    end_time = excluded.end_time,
                    message_count = excluded.message_count,
                    chunk_summary = excluded.chunk_summary,
                    chunk_text = excluded.chunk_text,
                    emotional_tone = excluded.emotional_tone,
                    conflict_detected = excluded.conflict_detected,
                    sentiment_score = excluded.sentiment_score,
                    participants = excluded.participants,
                    conversation_type = excluded.conversation_type,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING id
                """,
                (
                    chunk.start_time,
                    chunk.end_time,
                    chunk.message_count,
                    chunk.chunk_summary,
                    chunk.chunk_text,
                    chunk.emotional_tone,
                    1 if chunk.conflict_detected else 0,
                    chunk.sentiment_score,
                    chunk.participants,
                    chunk.conversation_type,
                    chunk.relationship_id,
                    chunk.vector_id,
                ),
            ).fetchone()
            chunk_id = int(row["id"])
            for tag in chunk.tags:
                conn.execute(
                    "INSERT OR IGNORE INTO conversation_tags (chunk_id, tag_name) VALUES (?, ?)",
                    (chunk_id, tag),
                )
            return chunk_id

    def count_chunks(self: UnmaskDBBase, since: str | None = None) -> int:
        where = WhereBuilder().add_if(since, "start_time >= ?", since)
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS count FROM conversation_chunks {where.sql}", where.params
            ).fetchone()
            return int(row["count"])

    def list_chunks(
        self: UnmaskDBBase,
        limit: int = 10,
        offset: int = 0,
        since: str | None = None,
    ) -> list[ChunkRecord]:
        """List chunks newest first, with their tags attached."""
        where = WhereBuilder().add_if(since, "start_time >= ?", since)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM conversation_chunks {where.sql} "
                "ORDER BY start_time DESC LIMIT ? OFFSET ?",
                [*where.params, limit, offset],
            ).fetchall()
            chunks = [ChunkRecord.from_row(r) for r in rows]
            self._attach_tags(conn, chunks)
            return chunks

    def chunks_since(self: UnmaskDBBase, since: str | None = None) -> list[ChunkRecord]:
        """All chunks starting at or after since, oldest first."""
        where = WhereBuilder().add_if(since, "start_time >= ?", since)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM conversation_chunks {where.sql} ORDER BY start_time ASC",
                where.params,
            ).fetchall()
            chunks = [ChunkRecord.from_row(r) for r in rows]
            self._attach_tags(conn, chunks)
            return chunks

    def _attach_tags(self, conn: Any, chunks: list[ChunkRecord]) -> None:
        ids = [c.id for c in chunks if c.id is not None]
        if not ids:
            return
        placeholders, params = QueryBuilder.in_clause(ids)
        by_chunk: dict[int, list[str]] = {}
        for row in conn.execute(
            f"SELECT chunk_id, tag_name FROM conversation_tags WHERE chunk_id IN ({placeholders}) "
            "ORDER BY confidence_score DESC, tag_name",
            params,
        ):
            by_chunk.setdefault(row["chunk_id"], []).append(row["tag_name"])
        for chunk in chunks:
            chunk.tags = by_chunk.get(chunk.id or -1, [])

    def top_tags(
        self: UnmaskDBBase, since: str | None = None, limit: int = 10
    ) -> list[dict[str, Any]]:
        where = WhereBuilder().add_if(since, "c.start_time >= ?", since)
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT t.tag_name AS tag, COUNT(*) AS count FROM conversation_tags t "
                f"JOIN conversation_chunks c ON c.id = t.chunk_id {where.sql} "
                "GROUP BY t.tag_name ORDER BY count DESC, t.tag_name LIMIT ?",
                [*where.params, limit],
            ).fetchall()
            return [{"tag": r["tag"], "count": r["count"]} for r in rows]
