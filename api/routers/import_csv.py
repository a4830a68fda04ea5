"""CSV import API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_database
from api.schemas import ImportCsvRequest
from unmask.db import UnmaskDB
from unmask.errors import missing_field_error
from unmask.ingest import import_csv

router = APIRouter(prefix="/import-csv", tags=["import"])

SAMPLE_SIZE = 5


@router.post("", summary="Import a CSV message export")
def import_messages(
    body: ImportCsvRequest,
    db: UnmaskDB = Depends(get_database),
) -> dict[str, Any]:
    """Insert every CSV row with a non-blank message.

    The body is ``{"csvData": "<csv text with a header row>"}``. Rows that
    fail are reported (first five) without stopping the import.
    """
    if not body.csv_data:
        raise missing_field_error("csvData", "No CSV data provided")
    return import_csv(db, body.csv_data).to_dict()


@router.get("", summary="Current message count and newest rows")
def import_status(db: UnmaskDB = Depends(get_database)) -> dict[str, Any]:
    return {
        "success": True,
        "totalRecords": db.count_messages(),
        "sampleData": [m.to_dict() for m in db.list_messages(limit=SAMPLE_SIZE)],
    }
