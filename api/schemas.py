"""Pydantic schemas for API requests and responses.

Request bodies accept the camelCase keys the dashboard sends; field names
stay snake_case in Python.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Base model that accepts both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)


class HistoryTurn(CamelModel):
    """One prior chat turn; assistant turns carry the agent that answered."""

    role: str = "user"
    content: str = ""
    agent_type: str | None = Field(default=None, alias="agentType")


class HealthResponse(BaseModel):
    """Service health status response."""

    status: str = Field(..., description="healthy, degraded or unhealthy")
    database: bool = Field(..., description="Whether the database answered a trivial query")
    openai_configured: bool = Field(..., description="Whether an OpenAI key is configured")
    message_count: int = Field(default=0, description="Messages stored")
    vector_count: int = Field(default=0, description="Conversation vectors stored")
    memory_available_gb: float = Field(..., description="Available system memory in GB")
    process_rss_mb: float = Field(..., description="Resident memory of this process in MB")
    version: str
    timestamp: str
    details: dict[str, str] | None = None


class ChatRequest(CamelModel):
    """Body of ``POST /chat``."""

    message: str = ""
    user_id: str | None = Field(default=None, alias="userId")
    conversation_history: list[HistoryTurn] = Field(
        default_factory=list, alias="conversationHistory"
    )


class ChatResponse(BaseModel):
    """Agent answer returned by ``POST /chat``."""

    response: str
    agentType: str
    confidence: float
    nextSteps: list[str] = Field(default_factory=list)
    relatedInsights: list[str] = Field(default_factory=list)
    timestamp: str


class RagRequest(CamelModel):
    """Body of ``POST /chat/rag``. ``query`` is accepted as a synonym for message."""

    message: str | None = None
    query: str | None = None
    top_k: int = Field(default=5, ge=1, le=50, alias="topK")
    conversation_history: list[HistoryTurn] = Field(
        default_factory=list, alias="conversationHistory"
    )


class ClassifyRequest(CamelModel):
    """Body of ``POST /agents/classify``."""

    message: str
    user_id: str | None = Field(default=None, alias="userId")
    context: dict[str, Any] = Field(default_factory=dict)
    conversation_history: list[HistoryTurn] = Field(
        default_factory=list, alias="conversationHistory"
    )


class MessageUpdateRequest(CamelModel):
    """Body of ``PATCH /messages/update``."""

    message_id: int | None = Field(default=None, alias="messageId")
    updates: dict[str, Any] = Field(default_factory=dict)


class ConversationInsightsRequest(CamelModel):
    time_range: str = Field(default="all", alias="timeRange")
    filter_context: dict[str, Any] | None = Field(default=None, alias="filterContext")


class PopulateRequest(CamelModel):
    """Body of ``POST /vectorize/populate``."""

    batch_size: int | None = Field(default=None, ge=1, le=10000, alias="batchSize")
    offset: int = Field(default=0, ge=0)


class VectorSearchRequest(CamelModel):
    query: str
    top_k: int = Field(default=5, ge=1, le=50, alias="topK")


class TrackerCreateRequest(BaseModel):
    """Body of ``POST /relationship-tracker``."""

    name: str = Field(..., min_length=1)
    partner_name: str | None = None
    start_date: str | None = None
    status: str = "active"


class TrackerUpdateRequest(BaseModel):
    """Body of ``PUT /relationship-tracker/{id}``: one table column and its new value."""

    field: str
    value: Any = None


class EventCreateRequest(BaseModel):
    """Body of ``POST /relationship-events``."""

    event_date: str | None = None
    event_type: str | None = None
    title: str | None = None
    event_time: str | None = None
    description: str | None = None
    notes: str | None = None
    category: str = "general"
    sentiment: str = "neutral"
    significance: int = Field(default=3, ge=1, le=5)
    initiated_by: str | None = None
    location: str | None = None
    mood_before: str | None = None
    mood_after: str | None = None


class ImportCsvRequest(CamelModel):
    csv_data: str | None = Field(default=None, alias="csvData")


__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ClassifyRequest",
    "ConversationInsightsRequest",
    "EventCreateRequest",
    "HealthResponse",
    "HistoryTurn",
    "ImportCsvRequest",
    "MessageUpdateRequest",
    "PopulateRequest",
    "RagRequest",
    "TrackerCreateRequest",
    "TrackerUpdateRequest",
    "VectorSearchRequest",
]
