"""Shared dependencies for API endpoints.

Provides the database, LLM client and orchestrator singletons to routers.
Tests replace them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from unmask.agents import Orchestrator, get_orchestrator
from unmask.db import UnmaskDB, get_db
from unmask.llm import LLMClient, get_llm_client


def get_database() -> UnmaskDB:
    """Database with the schema initialized."""
    return get_db()


def get_llm() -> LLMClient:
    return get_llm_client()


def get_agent_orchestrator() -> Orchestrator:
    return get_orchestrator()


__all__ = ["get_agent_orchestrator", "get_database", "get_llm"]
