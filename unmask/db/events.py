"""Relationship event and tracker operations mixins."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from unmask.db.models import RelationshipEvent, TrackerEntry
from unmask.db.query_builder import QueryBuilder, WhereBuilder
from unmask.db.schema import UPDATABLE_EVENT_FIELDS, UPDATABLE_TRACKER_FIELDS
from unmask.errors import record_not_found

if TYPE_CHECKING:
    from unmask.db.core import UnmaskDBBase


_EVENT_INSERT_COLUMNS = (
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
    "relationship_id",
)


def _event_where(
    start_date: str | None,
    end_date: str | None,
    event_type: str | None,
    category: str | None,
) -> WhereBuilder:
    where = WhereBuilder()
    where.add_if(start_date, "event_date >= ?", start_date)
    where.add_if(end_date, "event_date <= ?", end_date)
    where.add_if(event_type, "event_type = ?", event_type)
    where.add_if(category, "category = ?", category)
    return where


class EventMixin:
    """Mixin providing relationship event CRUD."""

    def create_event(self: UnmaskDBBase, event: RelationshipEvent) -> RelationshipEvent:
        """Insert an event and return the stored row."""
        values = [getattr(event, c) for c in _EVENT_INSERT_COLUMNS]
        placeholders = ", ".join("?" for _ in _EVENT_INSERT_COLUMNS)
        with self.connection() as conn:
            row = conn.execute(
                f"INSERT INTO relationship_events ({', '.join(_EVENT_INSERT_COLUMNS)}) "
                f"VALUES ({placeholders}) RETURNING *",
                values,
            ).fetchone()
            return RelationshipEvent.from_row(row)

    def get_event(self: UnmaskDBBase, event_id: int) -> RelationshipEvent | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM relationship_events WHERE id = ?", (event_id,)
            ).fetchone()
            return RelationshipEvent.from_row(row) if row else None

    def list_events(
        self: UnmaskDBBase,
        start_date: str | None = None,
        end_date: str | None = None,
        event_type: str | None = None,
        category: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List events newest first.

        Each returned dict carries the event columns plus ``days_ago``.

        Returns:
            Tuple of (events, total matching rows).
        """
        where = _event_where(start_date, end_date, event_type, category)
        with self.connection() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) AS total FROM relationship_events {where.sql}", where.params
            ).fetchone()["total"]
            rows = conn.execute(
                "SELECT *, CAST(julianday('now') - julianday(event_date) AS INTEGER) AS days_ago "
                f"FROM relationship_events {where.sql} "
                "ORDER BY event_date DESC, event_time DESC LIMIT ? OFFSET ?",
                [*where.params, limit, offset],
            ).fetchall()
        events = []
        for row in rows:
            data = RelationshipEvent.from_row(row).to_dict()
            data["days_ago"] = row["days_ago"]
            events.append(data)
        return events, int(total)

    def update_event(
        self: UnmaskDBBase, event_id: int, updates: dict[str, Any]
    ) -> RelationshipEvent:
        clause, params = QueryBuilder.update_set(updates, UPDATABLE_EVENT_FIELDS)
        with self.connection() as conn:
            row = conn.execute(
                f"UPDATE relationship_events SET {clause}, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ? RETURNING *",
                [*params, event_id],
            ).fetchone()
            if row is None:
                raise record_not_found("relationship_events", event_id)
            return RelationshipEvent.from_row(row)

    def delete_event(self: UnmaskDBBase, event_id: int) -> None:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM relationship_events WHERE id = ?", (event_id,))
            if cursor.rowcount == 0:
                raise record_not_found("relationship_events", event_id)

    def events_between(
        self: UnmaskDBBase, start_date: str | None, end_date: str | None
    ) -> list[RelationshipEvent]:
        where = _event_where(start_date, end_date, None, None)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM relationship_events {where.sql} ORDER BY event_date ASC",
                where.params,
            ).fetchall()
            return [RelationshipEvent.from_row(r) for r in rows]


class TrackerMixin:
    """Mixin providing relationship tracker rows."""

    def list_tracker(self: UnmaskDBBase) -> list[TrackerEntry]:
        with self.connection() as conn:
            rows = conn.execute("SELECT * FROM relationship_tracker ORDER BY id").fetchall()
            return [TrackerEntry.from_row(r) for r in rows]

    def add_tracker_entry(
        self: UnmaskDBBase,
        name: str,
        partner_name: str | None = None,
        start_date: str | None = None,
        status: str = "active",
    ) -> TrackerEntry:
        with self.connection() as conn:
            row = conn.execute(
                "INSERT INTO relationship_tracker (name, partner_name, start_date, status) "
                "VALUES (?, ?, ?, ?) RETURNING *",
                (name, partner_name, start_date, status),
            ).fetchone()
            return TrackerEntry.from_row(row)

    def update_tracker_field(
        self: UnmaskDBBase, entry_id: int, field: str, value: Any
    ) -> TrackerEntry:
        """Update a single whitelisted tracker column."""
        clause, params = QueryBuilder.update_set({field: value}, UPDATABLE_TRACKER_FIELDS)
        with self.connection() as conn:
            row = conn.execute(
                f"UPDATE relationship_tracker SET {clause}, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ? RETURNING *",
                [*params, entry_id],
            ).fetchone()
            if row is None:
                raise record_not_found("relationship_tracker", entry_id)
            return TrackerEntry.from_row(row)
