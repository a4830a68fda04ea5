"""CSV import of text-message exports.

Expected columns (header row, case-insensitive, surrounding spaces ignored):
``date``, ``date-time`` (or ``date_time``/``datetime``), ``time``,
``sender``, ``message``, ``type``, ``notes``, ``sentiment``, plus the
optional ``sentiment_score``, ``category``, ``tag`` and
``conflict_detected``. Unknown columns are ignored.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from unmask.db.models import format_timestamp, parse_timestamp
from unmask.errors import DatabaseError, ValidationError
from unmask.observability import timed_operation

if TYPE_CHECKING:
    from unmask.db import UnmaskDB

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 5

_COLUMN_ALIASES = {
    "date-time": "date_time",
    "datetime": "date_time",
    "date time": "date_time",
    "timestamp": "date_time",
    "sentiment-score": "sentiment_score",
    "conflict": "conflict_detected",
}
_TEXT_COLUMNS = (
    "date",
    "time",
    "sender",
    "message",
    "type",
    "notes",
    "sentiment",
    "category",
    "tag",
)
_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "t"})


@dataclass
class ImportResult:
    """Outcome of one CSV import."""

    total_records: int = 0
    inserted_count: int = 0
    skipped_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "totalRecords": self.total_records,
            "insertedCount": self.inserted_count,
            "skippedCount": self.skipped_count,
            "errorsCount": len(self.errors),
            "errors": self.errors[:MAX_REPORTED_ERRORS],
        }


def _normalize_header(name: str | None) -> str:
    key = (name or "").strip().lower()
    return _COLUMN_ALIASES.get(key, key.replace(" ", "_"))


def row_to_fields(row: dict[str, str]) -> dict[str, Any]:
    """Map one parsed CSV row onto message columns.

    Raises:
        ValueError: If sentiment_score is present but not a number.
    """
    fields: dict[str, Any] = {}
    for column in _TEXT_COLUMNS:
        value = row.get(column)
        fields[column] = value if value else None

    raw_dt = row.get("date_time")
    if raw_dt:
        parsed = parse_timestamp(raw_dt)
        fields["date_time"] = format_timestamp(parsed) if parsed else raw_dt
    elif fields["date"]:
        joined = f"{fields['date']} {fields['time']}" if fields["time"] else fields["date"]
        parsed = parse_timestamp(joined)
        fields["date_time"] = format_timestamp(parsed) if parsed else None

    score = row.get("sentiment_score")
    if score:
        fields["sentiment_score"] = float(score)
    flag = row.get("conflict_detected")
    if flag:
        fields["conflict_detected"] = 1 if flag.lower() in _TRUE_VALUES else 0
    return fields


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into trimmed rows keyed by normalized column name.

    Raises:
        ValidationError: If the text has no header or no message column.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), skipinitialspace=True)
    if not reader.fieldnames:
        raise ValidationError("CSV data is empty", field="csvData")
    headers = [_normalize_header(h) for h in reader.fieldnames]
    if "message" not in headers:
        raise ValidationError(
            "CSV must have a 'message' column",
            field="csvData",
            value=", ".join(reader.fieldnames),
        )

    rows = []
    for raw in reader:
        row = {
            _normalize_header(key): (value or "").strip()
            for key, value in raw.items()
            if key is not None and isinstance(value, str)
        }
        if not any(row.values()):
            continue
        rows.append(row)
    return rows


def import_csv(db: UnmaskDB, text: str) -> ImportResult:
    """Insert every row of a CSV export with a non-blank message.

    Rows with a blank message are skipped; rows that fail to insert are
    collected in ``errors`` and do not stop the import.

    Raises:
        ValidationError: If the CSV has no header or no message column.
    """
    rows = parse_csv(text)
    result = ImportResult(total_records=len(rows))
    with timed_operation(logger, "ingest.import_csv", rows=len(rows)) as ctx:
        for row in rows:
            if not row.get("message"):
                result.skipped_count += 1
                continue
            try:
                db.insert_message(**row_to_fields(row))
            except (ValueError, DatabaseError) as e:
                result.errors.append({"record": row, "error": str(e)})
                continue
            result.inserted_count += 1
        ctx.update(inserted=result.inserted_count, skipped=result.skipped_count)

    if result.errors:
        logger.warning("CSV import: %d rows failed", len(result.errors))
    return result


__all__ = ["ImportResult", "import_csv", "parse_csv", "row_to_fields"]
