"""Pytest configuration for UNMASK tests.

Every test runs against an isolated config file and database under
``tmp_path`` with no OpenAI key, so nothing touches ~/.unmask or the
network. Without a key the LLM client returns deterministic
pseudo-embeddings and the agents answer from stored data.
"""

import pytest
from fastapi.testclient import TestClient

from unmask.agents import Orchestrator, reset_orchestrator
from unmask.config import LLMConfig, OrchestratorConfig, reset_config
from unmask.db import UnmaskDB, reset_db
from unmask.llm import LLMClient, reset_llm_client

# Two evenings of conversation between Alex and the user.
SAMPLE_MESSAGES = [
    {
        "date_time": "2024-03-01T09:00:00",
        "sender": "Alex",
        "type": "Incoming",
        "message": "Good morning! I love waking up to your texts",
        "sentiment": "positive",
        "tag": "affection",
    },
    {
        "date_time": "2024-03-01T09:05:00",
        "sender": "You",
        "type": "Outgoing",
        "message": "Morning babe, miss you already",
        "sentiment": "positive",
        "tag": "affection",
    },
    {
        "date_time": "2024-03-01T09:20:00",
        "sender": "Alex",
        "type": "Incoming",
        "message": "Dinner at 7 tonight?",
        "sentiment": "neutral",
        "category": "plans",
    },
    {
        "date_time": "2024-03-01T21:00:00",
        "sender": "You",
        "type": "Outgoing",
        "message": "You forgot about dinner again. I'm really frustrated",
        "sentiment": "negative",
        "conflict_detected": 1,
    },
    {
        "date_time": "2024-03-01T21:10:00",
        "sender": "Alex",
        "type": "Incoming",
        "message": "I'm sorry, work ran late and I feel awful about it",
        "sentiment": "negative",
        "conflict_detected": 1,
    },
    {
        "date_time": "2024-03-02T08:30:00",
        "sender": "Alex",
        "type": "Incoming",
        "message": "Can we talk tonight? I want to make it right",
        "sentiment": "neutral",
    },
]

SAMPLE_CSV = """date,date-time,sender,message,type,sentiment
2024-03-01,2024-03-01 09:00:00,Alex,Good morning! I love waking up to your texts,Incoming,positive
2024-03-01,2024-03-01 09:05:00,You,Morning babe,Outgoing,positive
2024-03-01,2024-03-01 21:00:00,You,You forgot about dinner again,Outgoing,negative
2024-03-02,2024-03-02 08:30:00,Alex,,Incoming,neutral
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point config and database at tmp_path and reset every singleton."""
    monkeypatch.setattr("unmask.config.CONFIG_PATH", tmp_path / "config.json")
    monkeypatch.setenv("UNMASK_DB_PATH", str(tmp_path / "unmask.db"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    reset_config()
    reset_db()
    reset_llm_client()
    reset_orchestrator()
    yield
    reset_orchestrator()
    reset_llm_client()
    reset_db()
    reset_config()


@pytest.fixture
def db(tmp_path):
    """Empty database with the schema initialized."""
    database = UnmaskDB(tmp_path / "test.db")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def seeded_db(db):
    """Database holding SAMPLE_MESSAGES."""
    for fields in SAMPLE_MESSAGES:
        db.insert_message(**fields)
    return db


@pytest.fixture
def llm():
    """LLM client with no API key (offline embeddings, no completions)."""
    return LLMClient(LLMConfig(embedding_dimension=64))


@pytest.fixture
def orchestrator(db, llm):
    return Orchestrator(db, llm, config=OrchestratorConfig())


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def app(db, llm, orchestrator):
    """FastAPI app wired to the test database, offline LLM and orchestrator."""
    from api.dependencies import get_agent_orchestrator, get_database, get_llm
    from api.main import app as main_app
    from api.ratelimit import limiter

    main_app.dependency_overrides[get_database] = lambda: db
    main_app.dependency_overrides[get_llm] = lambda: llm
    main_app.dependency_overrides[get_agent_orchestrator] = lambda: orchestrator
    limiter.enabled = False
    yield main_app
    limiter.enabled = True
    main_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app, raise_server_exceptions=False)
