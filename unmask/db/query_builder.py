"""SQL Query Builder - Centralized safe SQL generation.

Filter endpoints compose WHERE clauses from optional query parameters and
update endpoints build SET clauses from caller-supplied field names. Both go
through here so column names are whitelisted and values are always bound.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from unmask.errors import ValidationError


class QueryBuilder:
    """Build SQL queries safely with automatic parameter handling."""

    @staticmethod
    def in_clause(values: list[Any]) -> tuple[str, list[Any]]:
        """Build safe IN clause with validated placeholders.

        Example:
            ph, vals = QueryBuilder.in_clause([1, 2, 3])
            # ph = "?,?,?", vals = [1, 2, 3]
        """
        if not values:
            return "NULL", []
        return ",".join("?" * len(values)), list(values)

    @staticmethod
    def update_set(
        updates: dict[str, Any], allowed: Iterable[str]
    ) -> tuple[str, list[Any]]:
        """Build a ``col = ?, ...`` SET clause from whitelisted fields.

        Args:
            updates: Mapping of column name to new value.
            allowed: Column names that may be updated.

        Returns:
            Tuple of (set_clause, parameters).

        Raises:
            ValidationError: If updates is empty or names a column not in allowed.
        """
        if not updates:
            raise ValidationError("No fields to update", field="updates")
        allowed_set = set(allowed)
        invalid = sorted(k for k in updates if k not in allowed_set)
        if invalid:
            raise ValidationError(
                f"Invalid field(s) for update: {', '.join(invalid)}",
                field=invalid[0],
            )
        columns = sorted(updates)
        clause = ", ".join(f"{col} = ?" for col in columns)
        return clause, [updates[col] for col in columns]


class WhereBuilder:
    """Accumulates AND-joined conditions and their parameters.

    Example:
        where = WhereBuilder()
        where.add("sender = ?", "Alex")
        where.add_if(year, "strftime('%Y', date_time) = ?", str(year))
        sql = f"SELECT * FROM messages {where.sql}"
        conn.execute(sql, where.params)
    """

    def __init__(self) -> None:
        self._conditions: list[str] = []
        self.params: list[Any] = []

    def add(self, condition: str, *params: Any) -> WhereBuilder:
        self._conditions.append(condition)
        self.params.extend(params)
        return self

    def add_if(self, enabled: Any, condition: str, *params: Any) -> WhereBuilder:
        if enabled:
            self.add(condition, *params)
        return self

    @property
    def sql(self) -> str:
        if not self._conditions:
            return ""
        return "WHERE " + " AND ".join(self._conditions)

    def __bool__(self) -> bool:
        return bool(self._conditions)
