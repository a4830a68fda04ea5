"""Message CRUD and query operations mixin."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from unmask.db.models import Message
from unmask.db.query_builder import QueryBuilder, WhereBuilder
from unmask.db.schema import UPDATABLE_MESSAGE_FIELDS
from unmask.errors import record_not_found

if TYPE_CHECKING:
    from unmask.db.core import UnmaskDBBase


_MESSAGE_COLUMNS = (
    "date",
    "time",
    "date_time",
    "type",
    "sender",
    "message",
    "attachment",
    "notes",
    "sentiment",
    "sentiment_score",
    "category",
    "tag",
    "conflict_detected",
)


@dataclass
class MessageFilters:
    """Optional filters accepted by the message listing endpoint.

    Attributes:
        search: Substring matched against message text or sender.
        sender: Exact sender name.
        category: Exact category.
        tag: Exact tag.
        sentiment: Exact sentiment label.
        year: Four-digit year of date_time.
        start_date: Inclusive lower bound on date_time (YYYY-MM-DD or ISO).
        end_date: Inclusive upper bound on the date part of date_time.
        conflict: "conflicts" for flagged messages, "peaceful" for the rest.
    """

    search: str | None = None
    sender: str | None = None
    category: str | None = None
    tag: str | None = None
    sentiment: str | None = None
    year: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    conflict: str | None = None

    def to_where(self) -> WhereBuilder:
        where = WhereBuilder()
        if self.search:
            pattern = f"%{self.search}%"
            where.add("(message LIKE ? OR sender LIKE ?)", pattern, pattern)
        where.add_if(self.sender, "sender = ?", self.sender)
        where.add_if(self.category, "category = ?", self.category)
        where.add_if(self.tag, "tag = ?", self.tag)
        where.add_if(self.sentiment, "sentiment = ?", self.sentiment)
        if self.year:
            where.add("strftime('%Y', date_time) = ?", f"{self.year:04d}")
        where.add_if(self.start_date, "date(date_time) >= date(?)", self.start_date)
        where.add_if(self.end_date, "date(date_time) <= date(?)", self.end_date)
        if self.conflict == "conflicts":
            where.add("conflict_detected = 1")
        elif self.conflict == "peaceful":
            where.add("(conflict_detected = 0 OR conflict_detected IS NULL)")
        return where


class MessageMixin:
    """Mixin providing message operations."""

    def insert_message(self: UnmaskDBBase, **fields: Any) -> int:
        """Insert one message and return its id.

        Unknown keyword arguments are ignored; ``message`` is required.
        """
        columns = [c for c in _MESSAGE_COLUMNS if c in fields]
        placeholders = ", ".join("?" for _ in columns)
        with self.connection() as conn:
            cursor = conn.execute(
                f"INSERT INTO messages ({', '.join(columns)}) VALUES ({placeholders})",
                [fields[c] for c in columns],
            )
            return int(cursor.lastrowid or 0)

    def count_messages(self: UnmaskDBBase, filters: MessageFilters | None = None) -> int:
        where = (filters or MessageFilters()).to_where()
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS count FROM messages {where.sql}", where.params
            ).fetchone()
            return int(row["count"])

    def list_messages(
        self: UnmaskDBBase,
        filters: MessageFilters | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        """List messages newest first.

        Args:
            filters: Optional filters.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            Messages ordered by date_time descending.
        """
        where = (filters or MessageFilters()).to_where()
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM messages {where.sql} ORDER BY date_time DESC, id DESC "
                "LIMIT ? OFFSET ?",
                [*where.params, limit, offset],
            ).fetchall()
            return [Message.from_row(r) for r in rows]

    def get_message(self: UnmaskDBBase, message_id: int) -> Message | None:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
            return Message.from_row(row) if row else None

    def get_messages_by_ids(self: UnmaskDBBase, message_ids: list[int]) -> list[Message]:
        """Fetch messages by id, newest first."""
        if not message_ids:
            return []
        placeholders, params = QueryBuilder.in_clause(message_ids)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM messages WHERE id IN ({placeholders}) ORDER BY date_time DESC",
                params,
            ).fetchall()
            return [Message.from_row(r) for r in rows]

    def messages_in_order(self: UnmaskDBBase, limit: int, offset: int = 0) -> list[Message]:
        """Page through messages oldest first (used by vectorization)."""
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM messages ORDER BY date_time ASC, id ASC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
            return [Message.from_row(r) for r in rows]

    def messages_between(
        self: UnmaskDBBase, start: str | None = None, end: str | None = None
    ) -> list[Message]:
        """All messages whose date falls within [start, end], oldest first."""
        where = WhereBuilder()
        where.add_if(start, "date(date_time) >= date(?)", start)
        where.add_if(end, "date(date_time) <= date(?)", end)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM messages {where.sql} ORDER BY date_time ASC, id ASC",
                where.params,
            ).fetchall()
            return [Message.from_row(r) for r in rows]

    def update_message(self: UnmaskDBBase, message_id: int, updates: dict[str, Any]) -> None:
        """Update whitelisted fields of one message.

        Raises:
            ValidationError: If updates is empty or names a non-updatable field.
            RecordNotFoundError: If no message has this id.
        """
        updates = dict(updates)
        if "conflict_detected" in updates:
            updates["conflict_detected"] = 1 if updates["conflict_detected"] else 0
        clause, params = QueryBuilder.update_set(updates, UPDATABLE_MESSAGE_FIELDS)
        with self.connection() as conn:
            cursor = conn.execute(
                f"UPDATE messages SET {clause} WHERE id = ?", [*params, message_id]
            )
            if cursor.rowcount == 0:
                raise record_not_found("messages", message_id)

    def delete_message(self: UnmaskDBBase, message_id: int) -> None:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
            if cursor.rowcount == 0:
                raise record_not_found("messages", message_id)

    def message_date_range(self: UnmaskDBBase) -> tuple[str | None, str | None]:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT MIN(date_time) AS first, MAX(date_time) AS last FROM messages"
            ).fetchone()
            return row["first"], row["last"]

    def distinct_senders(self: UnmaskDBBase) -> list[str]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT DISTINCT sender FROM messages WHERE sender IS NOT NULL AND sender != '' "
                "ORDER BY sender"
            ).fetchall()
            return [r["sender"] for r in rows]

    def message_counts_by(
        self: UnmaskDBBase,
        expression: str,
        limit: int | None = None,
        dated_only: bool = True,
    ) -> list[tuple[Any, int]]:
        """Group message counts by a trusted SQL expression, largest key first.

        Args:
            expression: SQL expression over the messages table (not user input).
            limit: Optional maximum number of groups.
            dated_only: Skip messages without a date_time.
        """
        where = "WHERE date_time IS NOT NULL " if dated_only else ""
        sql = (
            f"SELECT {expression} AS key, COUNT(*) AS count FROM messages "
            f"{where}GROUP BY key ORDER BY key DESC"
        )
        params: list[Any] = []
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        with self.connection() as conn:
            return [(r["key"], int(r["count"])) for r in conn.execute(sql, params).fetchall()]
