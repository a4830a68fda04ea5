"""User profile, score, concern and interaction operations mixin."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from unmask.db.models import UserProfile

if TYPE_CHECKING:
    from unmask.db.core import UnmaskDBBase


class UserMixin:
    """Mixin providing the tables behind the orchestrator's user context."""

    def get_user(self: UnmaskDBBase, user_id: str) -> UserProfile | None:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                return None
            return UserProfile(
                id=row["id"],
                relationship_start_date=row["relationship_start_date"],
                partner_name=row["partner_name"],
                communication_style=row["communication_style"],
                attachment_style=row["attachment_style"],
                last_interaction=row["last_interaction"],
            )

    def upsert_user(self: UnmaskDBBase, profile: UserProfile) -> None:
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO users
                (id, relationship_start_date, partner_name, communication_style, attachment_style)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    relationship_start_date = excluded.relationship_start_date,
                    partner_name = excluded.partner_name,
                    communication_style = excluded.communication_style,
                    attachment_style = excluded.attachment_style
                """,
                (
                    profile.id,
                    profile.relationship_start_date,
                    profile.partner_name,
                    profile.communication_style,
                    profile.attachment_style,
                ),
            )

    def latest_health_score(self: UnmaskDBBase, user_id: str) -> float | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT health_score FROM relationship_scores WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT 1",
                (user_id,),
            ).fetchone()
            return float(row["health_score"]) if row else None

    def record_health_score(self: UnmaskDBBase, user_id: str, score: float) -> None:
        with self.connection() as conn:
            conn.execute("INSERT OR IGNORE INTO users (id) VALUES (?)", (user_id,))
            conn.execute(
                "INSERT INTO relationship_scores (user_id, health_score) VALUES (?, ?)",
                (user_id, score),
            )

    def active_concerns(self: UnmaskDBBase, user_id: str) -> list[str]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT concern_text FROM user_concerns WHERE user_id = ? AND is_active = 1 "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
            return [r["concern_text"] for r in rows]

    def add_concern(self: UnmaskDBBase, user_id: str, concern: str) -> None:
        with self.connection() as conn:
            conn.execute("INSERT OR IGNORE INTO users (id) VALUES (?)", (user_id,))
            conn.execute(
                "INSERT INTO user_concerns (user_id, concern_text) VALUES (?, ?)",
                (user_id, concern),
            )

    def record_interaction(
        self: UnmaskDBBase,
        user_id: str,
        user_message: str,
        agent_type: str,
        agent_response: str,
        confidence: float,
        intent: str | None = None,
    ) -> None:
        """Log a chat turn and bump the user's last_interaction timestamp."""
        with self.connection() as conn:
            conn.execute(
                "INSERT INTO user_interactions "
                "(user_id, user_message, agent_type, agent_response, confidence, intent) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, user_message, agent_type, agent_response, confidence, intent),
            )
            conn.execute(
                "UPDATE users SET last_interaction = CURRENT_TIMESTAMP WHERE id = ?",
                (user_id,),
            )

    def recent_interactions(
        self: UnmaskDBBase, user_id: str, limit: int = 10
    ) -> list[dict[str, Any]]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT user_message, agent_type, agent_response, confidence, intent, created_at "
                "FROM user_interactions WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
            return [dict(r) for r in rows]
