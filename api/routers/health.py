"""Health check API endpoints.

Provides service health status including database, OpenAI key and memory state.
"""

import logging
import os
from datetime import UTC, datetime

import psutil
from fastapi import APIRouter, Depends

from api.dependencies import get_database, get_llm
from api.schemas import HealthResponse
from unmask import __version__
from unmask.db import UnmaskDB
from unmask.errors import DatabaseError
from unmask.llm import LLMClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

BYTES_PER_MB = 1024 * 1024
LOW_MEMORY_GB = 1.0


def _get_process_memory() -> float:
    """Resident memory of this process in MB (0.0 if unavailable)."""
    try:
        return psutil.Process(os.getpid()).memory_info().rss / BYTES_PER_MB
    except psutil.Error:
        return 0.0


def _table_counts(db: UnmaskDB) -> tuple[int, int]:
    try:
        return db.count_messages(), db.count_vectors()
    except DatabaseError as e:
        logger.warning("Health check could not count rows: %s", e)
        return 0, 0


@router.get("/health", response_model=HealthResponse)
def get_health(
    db: UnmaskDB = Depends(get_database),
    llm: LLMClient = Depends(get_llm),
) -> HealthResponse:
    """Get service health status.

    Returns information about:
    - Database reachability and row counts
    - Whether an OpenAI key is configured
    - System and process memory
    - Overall service health
    """
    memory = psutil.virtual_memory()
    available_gb = memory.available / (1024**3)

    database_ok = db.ping()
    message_count, vector_count = _table_counts(db) if database_ok else (0, 0)

    details: dict[str, str] = {}
    if not database_ok:
        details["database"] = f"Database unreachable: {db.db_path}"
    if not llm.available:
        details["openai"] = "OPENAI_API_KEY not set; using offline embeddings and summaries"
    if available_gb < LOW_MEMORY_GB:
        details["memory"] = f"Low memory: {available_gb:.1f}GB available"

    if not database_ok:
        status = "unhealthy"
    elif available_gb < LOW_MEMORY_GB:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        database=database_ok,
        openai_configured=llm.available,
        message_count=message_count,
        vector_count=vector_count,
        memory_available_gb=round(available_gb, 2),
        process_rss_mb=round(_get_process_memory(), 1),
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        details=details or None,
    )


@router.get("/")
def root() -> dict[str, str]:
    """Root endpoint - simple health ping."""
    return {"status": "ok", "service": "unmask-api"}
