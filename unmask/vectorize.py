"""Chunk vectorization and semantic search.

``populate`` pages through stored messages oldest first, groups each page
into conversation chunks, embeds every chunk and stores the vector plus a
conversation_chunks row. Chunks that fail to embed are skipped and logged
so one bad request does not lose the whole batch.

Usage:
    result = populate(db, llm, batch_size=1000, offset=0)
    while result.has_more:
        result = populate(db, llm, batch_size=1000, offset=result.offset + result.batch_size)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from unmask.chunking import chunk_messages
from unmask.config import ChunkingConfig, get_config
from unmask.db.vectors import VectorMatch
from unmask.errors import ErrorCode, LLMError, ValidationError, VectorizeError
from unmask.observability import timed_operation

if TYPE_CHECKING:
    from unmask.db import UnmaskDB
    from unmask.llm import LLMClient

logger = logging.getLogger(__name__)


@dataclass
class PopulateResult:
    """Outcome of one populate batch."""

    conversations: int
    messages_processed: int
    offset: int
    batch_size: int
    has_more: bool
    total_messages: int
    failed_chunks: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversations": self.conversations,
            "messagesProcessed": self.messages_processed,
            "offset": self.offset,
            "batchSize": self.batch_size,
            "hasMore": self.has_more,
            "totalMessages": self.total_messages,
            "failedChunks": self.failed_chunks,
        }


def populate(
    db: UnmaskDB,
    llm: LLMClient,
    batch_size: int | None = None,
    offset: int = 0,
    config: ChunkingConfig | None = None,
) -> PopulateResult:
    """Chunk, embed and store one page of messages.

    Args:
        db: Database holding messages, chunks and vectors.
        llm: Client used for embeddings.
        batch_size: Messages per page (defaults to the configured batch size).
        offset: Messages to skip, in date_time order.
        config: Chunking settings (defaults to the global config).

    Returns:
        PopulateResult for this page.

    Raises:
        ValidationError: If batch_size or offset is out of range.
        VectorizeError: If the page contains no messages.
    """
    config = config or get_config().chunking
    batch_size = batch_size or config.batch_size
    if batch_size < 1:
        raise ValidationError("batchSize must be at least 1", field="batchSize", value=batch_size)
    if offset < 0:
        raise ValidationError("offset must not be negative", field="offset", value=offset)

    messages = db.messages_in_order(batch_size, offset)
    if not messages:
        raise VectorizeError(
            "No messages found to vectorize",
            code=ErrorCode.VEC_NO_MESSAGES,
            details={"hasMore": False},
        )

    with timed_operation(logger, "vectorize.populate", offset=offset, batch_size=batch_size) as ctx:
        chunks = chunk_messages(messages, timedelta(minutes=config.gap_minutes))
        stored = 0
        failed = 0
        for i, chunk in enumerate(chunks):
            vector_id = chunk.vector_id(offset + i)
            try:
                embedding = llm.embed(chunk.embedding_text(config.max_embedding_chars))
            except LLMError as e:
                failed += 1
                logger.error("Failed to embed conversation chunk %s: %s", vector_id, e)
                continue
            db.upsert_vector(vector_id, embedding, chunk.metadata(config.max_metadata_chars))
            db.save_chunk(chunk.to_record(vector_id))
            stored += 1

        total = db.count_messages()
        ctx.update(conversations=stored, failed_chunks=failed)

    return PopulateResult(
        conversations=stored,
        messages_processed=len(messages),
        offset=offset,
        batch_size=batch_size,
        has_more=offset + batch_size < total,
        total_messages=total,
        failed_chunks=failed,
    )


def populate_all(
    db: UnmaskDB,
    llm: LLMClient,
    batch_size: int | None = None,
    offset: int = 0,
) -> list[PopulateResult]:
    """Run populate batches until every message has been processed."""
    results = []
    while True:
        result = populate(db, llm, batch_size=batch_size, offset=offset)
        results.append(result)
        if not result.has_more:
            return results
        offset = result.offset + result.batch_size


def status(db: UnmaskDB, config: ChunkingConfig | None = None) -> dict[str, Any]:
    config = config or get_config().chunking
    count = db.count_vectors()
    return {
        "success": True,
        "index": config.index_name,
        "status": "ready" if count else "empty",
        "vectorCount": count,
        "dimensions": db.vector_dimensions(),
        "ready": count > 0,
    }


def check(db: UnmaskDB, llm: LLMClient, config: ChunkingConfig | None = None) -> dict[str, Any]:
    """Probe the vector index with a sample query and summarize the message table."""
    config = config or get_config().chunking
    try:
        sample = db.query_vectors(llm.embed("relationship check-in"), top_k=1)
        index_status: dict[str, Any] = {
            "working": True,
            "matchCount": len(sample),
            "sampleMatch": sample[0].to_dict() if sample else None,
        }
    except (LLMError, VectorizeError) as e:
        index_status = {"working": False, "error": e.message}

    vector_count = db.count_vectors()
    first, last = db.message_date_range()
    with_sentiment = sum(
        count
        for label, count in db.message_counts_by("sentiment", dated_only=False)
        if label not in (None, "")
    )
    if vector_count == 0:
        advice = "No vectors found. Run vectorize populate to create vectors from your messages."
    else:
        advice = f"Found {vector_count} vectors. Index appears to be populated."

    return {
        "success": True,
        "vectorizeIndex": {
            "name": config.index_name,
            "status": index_status,
            "vectorCount": vector_count,
        },
        "database": {
            "totalMessages": db.count_messages(),
            "uniqueSenders": len(db.distinct_senders()),
            "dateRange": {"earliest": first, "latest": last},
            "messagesWithSentiment": with_sentiment,
        },
        "recommendations": {
            "shouldPopulate": vector_count == 0,
            "message": advice,
        },
    }


def search(db: UnmaskDB, llm: LLMClient, query: str, top_k: int = 5) -> list[VectorMatch]:
    """Embed ``query`` and return the closest stored conversation chunks.

    Raises:
        ValidationError: If the query is blank or top_k is not positive.
    """
    if not query or not query.strip():
        raise ValidationError(
            "query is required", field="query", code=ErrorCode.VAL_MISSING_REQUIRED
        )
    if top_k < 1:
        raise ValidationError("topK must be at least 1", field="topK", value=top_k)
    with timed_operation(logger, "vectorize.search", level=logging.DEBUG, top_k=top_k) as ctx:
        matches = db.query_vectors(llm.embed(query), top_k=top_k)
        ctx["matches"] = len(matches)
    return matches


def message_ids_from_matches(matches: list[VectorMatch]) -> list[int]:
    """Message ids referenced by match metadata, in match order, deduplicated."""
    ids: dict[int, None] = {}
    for match in matches:
        for raw in match.metadata.get("messageIds") or []:
            try:
                ids.setdefault(int(raw), None)
            except (TypeError, ValueError):
                continue
    return list(ids)


__all__ = [
    "PopulateResult",
    "check",
    "message_ids_from_matches",
    "populate",
    "populate_all",
    "search",
    "status",
]
